"""
Storage module - Interview data collaborator (applicants, questions, answers).
"""

from interview_capture.services.storage.base import InterviewRepository
from interview_capture.services.storage.postgrest import PostgrestRepository

__all__ = [
    "InterviewRepository",
    "PostgrestRepository",
    "create_repository",
]


def create_repository(**kwargs) -> InterviewRepository:
    """Create the interview data collaborator configured in settings."""
    return PostgrestRepository(**kwargs)
