"""
Abstract base class for the interview data collaborator.

The session controller never owns persistence: applicants, interviews,
questions and answer rows live behind this interface. Every call may fail
with ``TransportError``.
"""

from abc import ABC, abstractmethod

from interview_capture.core.models import Applicant, ApplicantStatus, Interview, Question


class InterviewRepository(ABC):
    """Interface that every interview data backend must implement."""

    @abstractmethod
    async def load_applicant(self, applicant_id: int) -> Applicant:
        """Return an applicant or raise ``ApplicantNotFoundError``."""

    @abstractmethod
    async def load_interview(self, interview_id: int) -> Interview:
        """Return an interview or raise ``InterviewNotFoundError``."""

    @abstractmethod
    async def load_questions(self, interview_id: int) -> list[Question]:
        """Return the interview's questions in display order (may be empty)."""

    @abstractmethod
    async def create_answer_record(
        self,
        applicant_id: int,
        interview_id: int,
        question_id: int,
        text: str,
    ) -> None:
        """Persist one answer row."""

    @abstractmethod
    async def update_applicant_status(self, applicant_id: int, status: ApplicantStatus) -> None:
        """Set the applicant's interview status."""

    async def aclose(self) -> None:
        """Release any network resources."""
