"""Jobsheet LMS API: courses, modules, quizzes, assignments and an AI tutor."""

__version__ = "0.1.0"
