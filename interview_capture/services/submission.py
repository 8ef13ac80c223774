"""Submission of accumulated answers to the interview API.

Each answer is written with its own call, in the store's insertion order.
The applicant is marked completed only when every write succeeded. The API
has no transaction boundary, so rows written before a failure stay written;
the coordinator remembers which questions were acknowledged and skips them
when the submission is retried.
"""

import logging

from interview_capture.core.exceptions import PartialSubmissionError, TransportError
from interview_capture.core.models import ApplicantStatus, SubmissionResult
from interview_capture.services.answers import AnswerStore
from interview_capture.services.storage.base import InterviewRepository

logger = logging.getLogger(__name__)


class SubmissionCoordinator:
    """Persists an AnswerStore and flips the applicant's status.

    Args:
        repository: Interview data collaborator.
    """

    def __init__(self, repository: InterviewRepository) -> None:
        self._repository = repository
        self._acknowledged: set[int] = set()

    @property
    def acknowledged(self) -> frozenset[int]:
        """Question ids whose answer rows the API has confirmed."""
        return frozenset(self._acknowledged)

    async def submit(
        self,
        answers: AnswerStore,
        applicant_id: int,
        interview_id: int,
    ) -> SubmissionResult:
        """Write every pending answer, then mark the applicant completed.

        Raises:
            PartialSubmissionError: One or more answer writes failed; the
                status update was not attempted.
            TransportError: The status update itself failed.
        """
        persisted: list[int] = []
        skipped: list[int] = []
        failed: dict[int, str] = {}

        for question_id, text in answers.items():
            if question_id in self._acknowledged:
                skipped.append(question_id)
                continue
            try:
                await self._repository.create_answer_record(
                    applicant_id, interview_id, question_id, text
                )
            except TransportError as exc:
                logger.warning(
                    "Failed to save answer for applicant=%s question=%s: %s",
                    applicant_id,
                    question_id,
                    exc.detail,
                )
                failed[question_id] = exc.detail
                continue
            self._acknowledged.add(question_id)
            persisted.append(question_id)

        if failed:
            raise PartialSubmissionError(failed=failed, persisted=persisted)

        await self._repository.update_applicant_status(applicant_id, ApplicantStatus.completed)
        logger.info(
            "Submitted %d answer(s) for applicant %s (%d already saved)",
            len(persisted),
            applicant_id,
            len(skipped),
        )
        return SubmissionResult(
            persisted=persisted,
            skipped=skipped,
            status=ApplicantStatus.completed,
        )
