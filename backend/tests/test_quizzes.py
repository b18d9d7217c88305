"""Tests for quiz authoring, visibility and submission."""
import pytest
from fastapi import status

from lms.models import Quiz, QuizAnswer, QuizQuestion, QuizSubmission

from conftest import auth_headers, make_pdf


def question(text="Apa itu subnet?", correct="A", points=1, order=0):
    return {
        "questionText": text,
        "optionA": "Bagian jaringan",
        "optionB": "Router",
        "optionC": "Kabel",
        "optionD": "Switch",
        "optionE": "Hub",
        "correctAnswer": correct,
        "points": points,
        "orderIndex": order,
    }


def quiz_body(class_id, **overrides):
    body = {
        "classId": class_id,
        "title": "Kuis Jaringan",
        "description": "Pekan 1",
        "timeLimit": 30,
        "questions": [question(), question("Fungsi router?", "B", 2, 1)],
    }
    body.update(overrides)
    return body


def grading_counts(db_session, quiz_id):
    submissions = db_session.query(QuizSubmission).filter(QuizSubmission.quiz_id == quiz_id).count()
    answers = (
        db_session.query(QuizAnswer)
        .join(QuizSubmission, QuizAnswer.submission_id == QuizSubmission.id)
        .filter(QuizSubmission.quiz_id == quiz_id)
        .count()
    )
    return submissions, answers


def test_create_quiz(client, admin, jobsheet):
    response = client.post("/api/quizzes", json=quiz_body(jobsheet.id), headers=auth_headers(admin))
    assert response.status_code == status.HTTP_201_CREATED
    quiz = response.json()["data"]["quiz"]
    assert quiz["is_published"] is False
    assert quiz["created_by"] == admin.id
    assert quiz["time_limit"] == 30
    assert [q["correct_answer"] for q in quiz["questions"]] == ["A", "B"]
    assert [q["order_index"] for q in quiz["questions"]] == [0, 1]


def test_create_quiz_extracts_class_text_lazily(client, admin, make_jobsheet, storage, db_session):
    stored = storage.save("jobsheets", "materi.pdf", make_pdf("Materi subnetting dasar"))
    jobsheet = make_jobsheet(admin, file_url=stored.url)
    assert jobsheet.extracted_text is None

    response = client.post("/api/quizzes", json=quiz_body(jobsheet.id), headers=auth_headers(admin))
    assert response.status_code == status.HTTP_201_CREATED
    db_session.refresh(jobsheet)
    assert "Materi subnetting dasar" in jobsheet.extracted_text


def test_create_quiz_class_checks(client, admin, other_admin, jobsheet):
    response = client.post("/api/quizzes", json=quiz_body(jobsheet.id), headers=auth_headers(other_admin))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json() == {"error": "You can only create quizzes for your own classes"}

    missing = "99999999-9999-4999-8999-999999999999"
    response = client.post("/api/quizzes", json=quiz_body(missing), headers=auth_headers(admin))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Class not found"}


@pytest.mark.parametrize("overrides", [
    {"questions": []},
    {"title": ""},
    {"timeLimit": 0},
    {"classId": "kelas-1"},
    {"questions": [question(correct="F")]},
    {"questions": [question(points=0)]},
])
def test_create_quiz_validation(client, admin, jobsheet, overrides):
    response = client.post("/api/quizzes", json=quiz_body(jobsheet.id, **overrides), headers=auth_headers(admin))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Validation error"}


def test_students_only_see_published_quizzes(client, admin, student, jobsheet, make_quiz):
    published = make_quiz(jobsheet, admin, title="Terbit")
    make_quiz(jobsheet, admin, title="Draf", published=False)

    response = client.get("/api/quizzes", headers=auth_headers(student))
    assert [q["id"] for q in response.json()["data"]] == [published.id]

    response = client.get("/api/quizzes", headers=auth_headers(admin))
    assert len(response.json()["data"]) == 2


def test_admin_lists_only_quizzes_of_own_classes(client, admin, other_admin, jobsheet, make_jobsheet, make_quiz):
    mine = make_quiz(jobsheet, admin)
    make_quiz(make_jobsheet(other_admin, code="X-1"), other_admin)
    response = client.get("/api/quizzes", headers=auth_headers(admin))
    data = response.json()["data"]
    assert [q["id"] for q in data] == [mine.id]
    assert data[0]["jobsheet"] == {"id": jobsheet.id, "name": jobsheet.name, "code": jobsheet.code}


def test_student_view_hides_answers(client, student, quiz):
    response = client.get(f"/api/quizzes/{quiz.id}", headers=auth_headers(student))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["already_submitted"] is False
    assert len(data["questions"]) == 3
    assert all("correct_answer" not in q for q in data["questions"])


def test_student_view_after_submission(client, student, quiz, make_submission):
    make_submission(quiz, student, {0: "A", 1: "C", 2: "C"})
    response = client.get(f"/api/quizzes/{quiz.id}", headers=auth_headers(student))
    data = response.json()["data"]
    assert data["already_submitted"] is True
    assert data["submission"]["score"] == 2
    assert data["submission"]["incorrect_questions"] == [{
        "question_id": quiz.questions[1].id,
        "question_text": "Pertanyaan 2",
        "student_answer": "C",
    }]
    assert len(data["submission"]["answers"]) == 3


def test_student_cannot_see_unpublished_quiz(client, admin, student, jobsheet, make_quiz):
    draft = make_quiz(jobsheet, admin, published=False)
    response = client.get(f"/api/quizzes/{draft.id}", headers=auth_headers(student))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Quiz not found"}


def test_admin_view_includes_answers(client, admin, quiz):
    response = client.get(f"/api/quizzes/{quiz.id}", headers=auth_headers(admin))
    assert [q["correct_answer"] for q in response.json()["data"]["questions"]] == ["A", "B", "C"]


def test_publish_toggle_never_touches_grading_data(client, admin, student, other_student, quiz, make_submission,
                                                   db_session):
    make_submission(quiz, student, {0: "A", 1: "B", 2: "D"})
    make_submission(quiz, other_student, {0: "E"})
    before = grading_counts(db_session, quiz.id)
    assert before == (2, 6)

    for flag in (False, True, False, False, True):
        response = client.patch(
            f"/api/quizzes/{quiz.id}/publish", json={"is_published": flag}, headers=auth_headers(admin),
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["is_published"] is flag
        assert grading_counts(db_session, quiz.id) == before

    db_session.expire_all()
    assert db_session.get(Quiz, quiz.id).is_published is True


def test_publish_messages(client, admin, quiz):
    response = client.patch(f"/api/quizzes/{quiz.id}/publish", json={"is_published": False}, headers=auth_headers(admin))
    assert response.json()["data"]["message"] == "Quiz archived (hidden from mahasiswa)"
    response = client.patch(f"/api/quizzes/{quiz.id}/publish", json={"is_published": True}, headers=auth_headers(admin))
    assert response.json()["data"]["message"] == "Quiz published (visible to mahasiswa)"


@pytest.mark.parametrize("body", [{"is_published": "yes"}, {"is_published": 1}, {}, ["true"]])
def test_publish_requires_boolean(client, admin, quiz, db_session, body):
    response = client.patch(f"/api/quizzes/{quiz.id}/publish", json=body, headers=auth_headers(admin))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "is_published must be a boolean"}
    db_session.expire_all()
    assert db_session.get(Quiz, quiz.id).is_published is True


def test_publish_ownership(client, other_admin, quiz):
    response = client.patch(
        f"/api/quizzes/{quiz.id}/publish", json={"is_published": False}, headers=auth_headers(other_admin),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json() == {"error": "You can only update your own quizzes"}

    response = client.patch("/api/quizzes/missing/publish", json={"is_published": False}, headers=auth_headers(other_admin))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_submit_scores_answers(client, student, jobsheet, quiz, db_session):
    q1, q2, q3 = quiz.questions
    response = client.post(
        f"/api/quizzes/{quiz.id}/submit",
        json={"answers": [
            {"questionId": q1.id, "answer": "A"},
            {"questionId": q2.id, "answer": "D"},
        ]},
        headers=auth_headers(student),
    )
    assert response.status_code == status.HTTP_201_CREATED
    submission = response.json()["data"]["submission"]
    assert submission["score"] == 1
    assert submission["total_points"] == 3
    assert submission["extracted_text"] == jobsheet.extracted_text
    assert [q["question_id"] for q in submission["incorrect_questions"]] == [q2.id, q3.id]
    assert submission["incorrect_questions"][1]["student_answer"] == "No answer"

    answers = db_session.query(QuizAnswer).filter(QuizAnswer.submission_id == submission["id"]).all()
    assert sorted((a.question_id, a.is_correct) for a in answers) == sorted(
        [(q1.id, True), (q2.id, False), (q3.id, False)]
    )


def test_submit_twice(client, student, quiz, make_submission):
    make_submission(quiz, student, {0: "A"})
    response = client.post(f"/api/quizzes/{quiz.id}/submit", json={"answers": []}, headers=auth_headers(student))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "You have already submitted this quiz"}


def test_submit_quiz_without_questions(client, admin, student, jobsheet, make_quiz):
    empty = make_quiz(jobsheet, admin, answers=())
    response = client.post(f"/api/quizzes/{empty.id}/submit", json={"answers": []}, headers=auth_headers(student))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Quiz has no questions"}


def test_submit_unpublished_quiz(client, admin, student, jobsheet, make_quiz):
    draft = make_quiz(jobsheet, admin, published=False)
    response = client.post(f"/api/quizzes/{draft.id}/submit", json={"answers": []}, headers=auth_headers(student))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_update_quiz_replaces_questions(client, admin, quiz, db_session):
    body = quiz_body(quiz.class_id, title="Kuis Revisi", questions=[question("Baru?", "E")])
    body.pop("classId")
    response = client.put(f"/api/quizzes/{quiz.id}", json=body, headers=auth_headers(admin))
    assert response.status_code == status.HTTP_200_OK
    updated = response.json()["data"]["quiz"]
    assert updated["title"] == "Kuis Revisi"
    assert [q["question_text"] for q in updated["questions"]] == ["Baru?"]
    assert db_session.query(QuizQuestion).filter(QuizQuestion.quiz_id == quiz.id).count() == 1


def test_update_quiz_refused_after_submissions(client, admin, student, quiz, make_submission):
    make_submission(quiz, student, {0: "A"})
    body = quiz_body(quiz.class_id)
    response = client.put(f"/api/quizzes/{quiz.id}", json=body, headers=auth_headers(admin))
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_update_quiz_ownership(client, other_admin, quiz):
    response = client.put(f"/api/quizzes/{quiz.id}", json=quiz_body(quiz.class_id), headers=auth_headers(other_admin))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json() == {"error": "You can only edit your own quizzes"}


def test_delete_quiz(client, admin, other_admin, student, quiz, make_submission, db_session):
    make_submission(quiz, student, {0: "A"})

    response = client.delete(f"/api/quizzes/{quiz.id}", headers=auth_headers(other_admin))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json() == {"error": "You can only delete your own quizzes"}

    response = client.delete(f"/api/quizzes/{quiz.id}", headers=auth_headers(admin))
    assert response.status_code == status.HTTP_200_OK
    assert db_session.query(Quiz).count() == 0
    assert db_session.query(QuizSubmission).count() == 0
    assert db_session.query(QuizAnswer).count() == 0
