"""Interview session flow: welcome -> active(i) -> completed.

``SessionFlow`` owns the AnswerStore, the RecordingController for the
session and the SubmissionCoordinator. Questions may be skipped; an
interview with no questions cannot be begun.
"""

import logging

from interview_capture.core.config import get_settings
from interview_capture.core.exceptions import (
    InvalidStateError,
    NoQuestionsError,
    SubmissionInProgressError,
)
from interview_capture.core.models import (
    Applicant,
    Interview,
    Question,
    RecordingOutcome,
    RecordingPhase,
    SessionPhase,
    SessionState,
    SubmissionResult,
)
from interview_capture.services.answers import AnswerStore
from interview_capture.services.audio.capture import AudioCapture
from interview_capture.services.recording import RecordingController, RecordingSession
from interview_capture.services.storage.base import InterviewRepository
from interview_capture.services.submission import SubmissionCoordinator
from interview_capture.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)


class SessionFlow:
    """One applicant's pass through an interview.

    Args:
        applicant: The applicant taking the interview.
        interview: The interview being taken.
        questions: Questions in display order.
        capture: Audio input for recordings.
        stt: Speech-to-text engine.
        repository: Collaborator used for submission.
        min_transcript_length: Quality-gate threshold (defaults to settings).
    """

    def __init__(
        self,
        applicant: Applicant,
        interview: Interview,
        questions: list[Question],
        capture: AudioCapture,
        stt: BaseSTT,
        repository: InterviewRepository,
        min_transcript_length: int | None = None,
    ) -> None:
        if min_transcript_length is None:
            min_transcript_length = get_settings().min_transcript_length
        self.applicant = applicant
        self.interview = interview
        self.questions = list(questions)
        self._phase = SessionPhase.welcome
        self._index = 0
        self.answers = AnswerStore()
        self.recorder = RecordingController(
            capture=capture,
            stt=stt,
            answers=self.answers,
            current_question=lambda: self.current_question,
            min_transcript_length=min_transcript_length,
        )
        self._submission = SubmissionCoordinator(repository)
        self._submitting = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def submitting(self) -> bool:
        """True while a submission is waiting on the interview API."""
        return self._submitting

    @property
    def current_index(self) -> int | None:
        """Index of the question on screen; None outside the active phase."""
        return self._index if self._phase is SessionPhase.active else None

    @property
    def current_question(self) -> Question | None:
        if self._phase is not SessionPhase.active:
            return None
        return self.questions[self._index]

    @property
    def is_last_question(self) -> bool:
        return self._phase is SessionPhase.active and self._index == len(self.questions) - 1

    def state(self) -> SessionState:
        """Snapshot for the API layer."""
        return SessionState(
            applicant=self.applicant,
            interview=self.interview,
            questions=self.questions,
            phase=self._phase,
            current_index=self.current_index,
            current_question=self.current_question,
            recording_phase=self.recorder.phase,
            transcribing=self.recorder.transcribing,
            submitting=self._submitting,
            target_question_id=self.recorder.target_question_id,
            answers=self.answers.as_dict(),
        )

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def begin(self) -> None:
        """Leave the welcome screen and show the first question.

        Raises:
            NoQuestionsError: The interview has no questions.
            InvalidStateError: Not on the welcome screen.
        """
        self._require(SessionPhase.welcome, "begin the interview")
        if not self.questions:
            raise NoQuestionsError(self.interview.id)
        self._phase = SessionPhase.active
        self._index = 0
        logger.info(
            "Applicant %s began interview %s (%d questions)",
            self.applicant.id,
            self.interview.id,
            len(self.questions),
        )

    def advance(self) -> None:
        """Move to the next question. The current one need not be answered."""
        self._require_editable("advance")
        if self.is_last_question:
            raise InvalidStateError("advance", "on the last question")
        self._index += 1
        logger.debug("Applicant %s advanced to question index %d", self.applicant.id, self._index)

    async def submit(self) -> SubmissionResult:
        """Persist the answers and complete the session.

        While the submission is in flight, recording, navigation, clearing
        answers and a second submit are rejected.

        Raises:
            InvalidStateError: Not on the last question, or a recording or
                transcription is still live.
            SubmissionInProgressError: Another submit has not finished.
            PartialSubmissionError, TransportError: Submission failed; the
                session stays on the last question for a retry.
        """
        self._require_editable("submit")
        if not self.is_last_question:
            raise InvalidStateError("submit", "before the last question")
        if self.recorder.busy:
            live = self.recorder.phase
            status = "starting" if live is RecordingPhase.idle else live.value
            raise InvalidStateError("submit", f"recording is {status}")

        self._submitting = True
        try:
            result = await self._submission.submit(
                self.answers, self.applicant.id, self.interview.id
            )
        finally:
            self._submitting = False
        self.answers.freeze()
        self._phase = SessionPhase.completed
        logger.info("Applicant %s completed interview %s", self.applicant.id, self.interview.id)
        return result

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def start_recording(self) -> RecordingSession:
        self._require_editable("start recording")
        return await self.recorder.start()

    async def pause_recording(self) -> None:
        self._require(SessionPhase.active, "pause recording")
        await self.recorder.pause()

    async def resume_recording(self) -> None:
        self._require(SessionPhase.active, "resume recording")
        await self.recorder.resume()

    async def stop_recording(self) -> RecordingOutcome:
        self._require(SessionPhase.active, "stop recording")
        return await self.recorder.stop()

    def clear_answer(self, question_id: int) -> bool:
        self._require_editable("clear an answer")
        return self.recorder.clear_answer(question_id)

    async def close(self) -> None:
        """Release any live recording (the page is being left)."""
        await self.recorder.abandon()

    def _require(self, phase: SessionPhase, operation: str) -> None:
        if self._phase is not phase:
            raise InvalidStateError(operation, f"the session is {self._phase.value}")

    def _require_editable(self, operation: str) -> None:
        """Active and not mid-submission."""
        self._require(SessionPhase.active, operation)
        if self._submitting:
            raise SubmissionInProgressError()


async def load_session(
    applicant_id: int,
    repository: InterviewRepository,
    capture: AudioCapture,
    stt: BaseSTT,
    min_transcript_length: int | None = None,
) -> SessionFlow:
    """Load applicant, interview and questions and build a welcome-phase session.

    Raises:
        ApplicantNotFoundError, InterviewNotFoundError: Lookup failed.
        TransportError: The interview API could not be reached.
    """
    applicant = await repository.load_applicant(applicant_id)
    interview = await repository.load_interview(applicant.interview_id)
    questions = await repository.load_questions(interview.id)
    logger.info(
        "Loaded session for applicant %s: interview %s with %d question(s)",
        applicant_id,
        interview.id,
        len(questions),
    )
    return SessionFlow(
        applicant=applicant,
        interview=interview,
        questions=questions,
        capture=capture,
        stt=stt,
        repository=repository,
        min_transcript_length=min_transcript_length,
    )
