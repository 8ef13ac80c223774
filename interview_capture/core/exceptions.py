"""
Interview capture exception hierarchy.

All application-specific exceptions inherit from InterviewCaptureError,
enabling centralized error handling in the API middleware layer.
"""

from datetime import UTC, datetime


class InterviewCaptureError(Exception):
    """Base exception for all interview capture errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "INTERVIEW_CAPTURE_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------


class PermissionDeniedError(InterviewCaptureError):
    """Raised when the platform refuses microphone access."""

    def __init__(self, detail: str = "Microphone access was denied") -> None:
        super().__init__(detail=detail, code="PERMISSION_DENIED", status_code=403)


class DeviceUnavailableError(InterviewCaptureError):
    """Raised when no usable input device (or audio backend) exists."""

    def __init__(self, detail: str = "No audio input device is available") -> None:
        super().__init__(detail=detail, code="DEVICE_UNAVAILABLE", status_code=503)


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------


class RecognitionError(InterviewCaptureError):
    """Raised when decoding or speech-recognition inference fails."""

    def __init__(self, detail: str = "Speech recognition failed") -> None:
        super().__init__(detail=detail, code="RECOGNITION_ERROR", status_code=500)


class QualityGateRejected(InterviewCaptureError):
    """Signals that a transcript was too short to keep.

    Not a failure: the recorder catches it and reports a soft warning.
    """

    def __init__(self, transcript: str, min_length: int) -> None:
        self.transcript = transcript
        self.min_length = min_length
        super().__init__(
            detail=(
                f"Transcript discarded: {len(transcript)} characters "
                f"(more than {min_length} required)"
            ),
            code="QUALITY_GATE_REJECTED",
            status_code=422,
        )


# ---------------------------------------------------------------------------
# State machine violations
# ---------------------------------------------------------------------------


class StateViolation(InterviewCaptureError):
    """Raised when an operation is invalid for the current state."""

    def __init__(self, detail: str, code: str = "STATE_VIOLATION") -> None:
        super().__init__(detail=detail, code=code, status_code=409)


class InvalidStateError(StateViolation):
    """Raised for a transition the current phase does not allow."""

    def __init__(self, operation: str, phase: str) -> None:
        self.operation = operation
        self.phase = phase
        super().__init__(
            detail=f"Cannot {operation} while {phase}",
            code="INVALID_STATE",
        )


class AlreadyRecordingError(StateViolation):
    """Raised when starting a recording while one is already active."""

    def __init__(self) -> None:
        super().__init__(detail="A recording is already active", code="ALREADY_RECORDING")


class TranscriptionInProgressError(StateViolation):
    """Raised when starting a recording while a transcription is outstanding."""

    def __init__(self) -> None:
        super().__init__(
            detail="A transcription is still in progress",
            code="TRANSCRIPTION_IN_PROGRESS",
        )


class AlreadyAnsweredError(StateViolation):
    """Raised when recording over a question that already has an answer."""

    def __init__(self, question_id: int) -> None:
        self.question_id = question_id
        super().__init__(
            detail=f"Question {question_id} already has an answer; clear it to re-record",
            code="ALREADY_ANSWERED",
        )


class SubmissionInProgressError(StateViolation):
    """Raised when the session is changed while its answers are being submitted."""

    def __init__(self) -> None:
        super().__init__(
            detail="The interview is being submitted",
            code="SUBMISSION_IN_PROGRESS",
        )


class NoQuestionsError(StateViolation):
    """Raised when beginning an interview that has no questions."""

    def __init__(self, interview_id: int) -> None:
        super().__init__(
            detail=f"Interview {interview_id} has no questions",
            code="NO_QUESTIONS",
        )


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


class PartialSubmissionError(InterviewCaptureError):
    """Raised when one or more answer writes failed.

    The applicant status is not updated and persisted rows are not rolled back.

    Attributes:
        failed: Mapping of question id to the failure message.
        persisted: Question ids written successfully during this attempt.
    """

    def __init__(self, failed: dict[int, str], persisted: list[int]) -> None:
        self.failed = failed
        self.persisted = persisted
        ids = ", ".join(str(q) for q in failed)
        super().__init__(
            detail=f"Failed to save answers for questions: {ids}",
            code="PARTIAL_SUBMISSION",
            status_code=502,
        )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class ApplicantNotFoundError(InterviewCaptureError):
    """Raised when an applicant ID does not exist."""

    def __init__(self, applicant_id: int | str) -> None:
        super().__init__(
            detail=f"Applicant not found: {applicant_id}",
            code="APPLICANT_NOT_FOUND",
            status_code=404,
        )


class InterviewNotFoundError(InterviewCaptureError):
    """Raised when an interview ID does not exist."""

    def __init__(self, interview_id: int | str) -> None:
        super().__init__(
            detail=f"Interview not found: {interview_id}",
            code="INTERVIEW_NOT_FOUND",
            status_code=404,
        )


class SessionNotFoundError(InterviewCaptureError):
    """Raised when no live session exists for an applicant."""

    def __init__(self, applicant_id: int | str) -> None:
        super().__init__(
            detail=f"No interview session open for applicant {applicant_id}",
            code="SESSION_NOT_FOUND",
            status_code=404,
        )


class TransportError(InterviewCaptureError):
    """Raised when a call to the interview API fails."""

    def __init__(self, detail: str = "Interview API request failed") -> None:
        super().__init__(detail=detail, code="TRANSPORT_ERROR", status_code=502)
