"""HTTP routes, all served under ``/api``."""
from fastapi import APIRouter

from lms.auth import auth_router
from . import admin, assignments, chat, jobsheet_submissions, jobsheets, modules, quizzes, submissions

api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router)
api_router.include_router(admin.router)
api_router.include_router(jobsheets.router)
api_router.include_router(modules.router)
api_router.include_router(quizzes.router)
api_router.include_router(submissions.router)
api_router.include_router(assignments.router)
api_router.include_router(jobsheet_submissions.router)
api_router.include_router(chat.router)

__all__ = ["api_router"]
