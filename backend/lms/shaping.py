"""Response shaping: the success envelope, serialization and grouping helpers."""
from typing import Any, Callable, Dict, Hashable, Iterable, List, Tuple, Type, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

StudentKey = Tuple[str, str]


def envelope(payload: Any) -> Dict[str, Any]:
    """Wrap a payload in the success envelope."""
    return {"data": payload}


def dump(schema: Type[BaseModel], obj: Any) -> Dict[str, Any]:
    """Serialize an ORM object through a response schema into JSON-ready data."""
    return schema.model_validate(obj).model_dump(mode="json")


def dump_many(schema: Type[BaseModel], objs: Iterable[Any]) -> List[Dict[str, Any]]:
    return [dump(schema, obj) for obj in objs]


def student_key(row: Any) -> StudentKey:
    return (row.student_id, row.nim)


def group_rows(rows: Iterable[T], key: Callable[[T], Hashable]) -> Dict[Hashable, List[T]]:
    """Bucket rows by ``key``.

    Buckets appear in order of first occurrence and each keeps the relative
    order of ``rows``.
    """
    groups: Dict[Hashable, List[T]] = {}
    for row in rows:
        groups.setdefault(key(row), []).append(row)
    return groups


def group_by_student(rows: Iterable[T]) -> List[List[T]]:
    """Group assignment rows per ``(student_id, nim)`` pair."""
    return list(group_rows(rows, student_key).values())


def student_groups(rows: Iterable[Any], serialize: Callable[[Any], Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Group assignment rows per student and attach the student's name and email."""
    result = []
    for (student_id, nim), bucket in group_rows(rows, student_key).items():
        student = bucket[0].student
        result.append({
            "student_id": student_id,
            "student_name": (student.full_name if student else None) or "Unknown",
            "student_email": (student.email if student else None) or "",
            "nim": nim,
            "assignments": [serialize(row) for row in bucket],
        })
    return result
