"""
AI tutor for post-quiz discussions.

The tutor only discusses questions a student answered incorrectly and guides
them with hints; it must never state the correct letter itself. Completions
go through any OpenAI-compatible endpoint (Gemini by default).
"""

import logging
from typing import Dict, List, Optional, Sequence

import openai
from fastapi import Depends

from .config import Settings, get_settings
from .errors import Unexpected

logger = logging.getLogger(__name__)

MODULE_CONTEXT_LIMIT = 3000

SYSTEM_PROMPT = """Anda adalah tutor AI pada sebuah LMS perguruan tinggi.

PERAN:
- Bersikap sabar dan suportif kepada mahasiswa.
- Bantu mahasiswa memahami soal kuis yang dijawab salah, hanya soal tersebut.
- Bimbing dengan petunjuk dan pertanyaan pemandu. JANGAN PERNAH menyebut atau menulis huruf jawaban yang benar (A, B, C, D, atau E).
- Gunakan konteks modul untuk menjelaskan konsep.
- Diskusi selesai hanya ketika mahasiswa sendiri menuliskan jawaban yang benar. Saat itu, puji mereka dan tanyakan apakah ada pertanyaan lain.

Selalu gunakan BAHASA INDONESIA."""

CORRECT_ANSWER_NOTE = """
Sistem mendeteksi bahwa mahasiswa baru saja menuliskan jawaban yang benar.
Puji dengan antusias (misalnya "Bagus sekali! Jawabanmu benar!"), konfirmasi pemahaman mereka,
lalu tanyakan apakah ada pertanyaan lain. Jangan sebut huruf jawabannya. BAHASA INDONESIA."""

_ANSWER_PHRASES = ("ANSWER IS {}", "THE ANSWER IS {}", "IT'S {}", "IT IS {}", "CORRECT ANSWER IS {}")


class TutorError(Exception):
    """Raised when no model produced a usable reply."""
    pass


def question_number(questions: Sequence, question) -> int:
    """1-based position of ``question`` in the quiz, by question text."""
    for index, q in enumerate(questions):
        if q.question_text == question.question_text:
            return index + 1
    return 1


def build_context(question, student_answer: Optional[str], number: int,
                  module_text: Optional[str] = None) -> str:
    """Describe the incorrectly answered question and the class material."""
    options = [("A", question.option_a), ("B", question.option_b), ("C", question.option_c),
               ("D", question.option_d), ("E", question.option_e)]
    option_lines = "\n".join(f"   {letter}. {text}" for letter, text in options if text)

    context = (
        "SOAL YANG DIJAWAB SALAH:\n\n"
        f"Soal {number}: {question.question_text}\n"
        f"{option_lines}\n\n"
        f"Jawaban mahasiswa (salah): {student_answer or 'Tidak dijawab'}\n"
        "(Jawaban benar hanya diketahui sistem. Jangan pernah menuliskannya.)"
    )

    if module_text:
        excerpt = module_text[:MODULE_CONTEXT_LIMIT]
        if len(module_text) > MODULE_CONTEXT_LIMIT:
            excerpt += "..."
        context += f"\n\n---\nKONTEKS MODUL (materi kelas):\n\n{excerpt}"

    context += (
        f"\n\nINSTRUKSI:\n"
        f"1. Mahasiswa menjawab salah pada Soal {number}. Bimbing dengan petunjuk.\n"
        "2. Jelaskan konsep memakai materi modul tanpa menyebut huruf jawaban.\n"
        "3. Bersikap hangat dan suportif."
    )
    return context


def detect_correct_answer(content: str, correct_answer: str) -> bool:
    """True when the student's message states the correct letter."""
    text = content.upper().strip()
    letter = correct_answer.upper().strip()
    if text == letter:
        return True
    return any(phrase.format(letter) in text for phrase in _ANSWER_PHRASES)


class TutorClient:
    """Generates tutor replies, trying each configured model in turn."""

    def __init__(self, api_key: Optional[str], base_url: str, models: Sequence[str], timeout: float = 30.0):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        # Preferred model first, duplicates dropped.
        self.models = list(dict.fromkeys(models))
        self._client = None

    @property
    def client(self) -> openai.AsyncOpenAI:
        """Lazy load the OpenAI-compatible client."""
        if self._client is None:
            if not self.api_key:
                raise TutorError("GEMINI_API_KEY is not configured")
            self._client = openai.AsyncOpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def reply(self, context: str, history: List[Dict[str, str]]) -> str:
        """Produce the tutor's next message for ``history`` (oldest first)."""
        messages = [{"role": "system", "content": f"{SYSTEM_PROMPT}\n\n{context}"}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        if len(messages) == 1:
            messages.append({"role": "user", "content": "Mulai diskusi tentang soal ini."})

        client = self.client
        last_error: Optional[Exception] = None
        for model in self.models:
            try:
                logger.info(f"Requesting tutor reply from model {model}")
                response = await client.chat.completions.create(model=model, messages=messages)
                text = (response.choices[0].message.content or "").strip() if response.choices else ""
                if not text:
                    raise TutorError("AI returned an empty response")
                return text
            except (openai.OpenAIError, TutorError) as e:
                logger.warning(f"Model {model} failed: {e}")
                last_error = e

        raise TutorError(f"All models failed. Last error: {last_error}")


def get_tutor(settings: Settings = Depends(get_settings)) -> TutorClient:
    """Dependency to get the AI tutor."""
    if not settings.ai_api_key:
        raise Unexpected("AI tutor not configured: missing GEMINI_API_KEY")
    return TutorClient(
        settings.ai_api_key,
        settings.ai_base_url,
        [settings.ai_model, *settings.ai_fallback_models],
        timeout=settings.ai_timeout,
    )
