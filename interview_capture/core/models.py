"""
Pydantic v2 domain and API models.

Collaborator records (applicant, interview, question) mirror the interview
API's wire names; session and recording phases are single enums so that
inconsistent flag combinations cannot be represented.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Collaborator records
# ---------------------------------------------------------------------------


class ApplicantStatus(StrEnum):
    """Interview status stored on the applicant record."""

    not_started = "Not Started"
    completed = "Completed"


class Applicant(BaseModel):
    """An applicant invited to take an interview."""

    model_config = ConfigDict(extra="ignore")

    id: int
    interview_id: int
    title: str = ""
    firstname: str = ""
    surname: str = ""
    phone_number: str | None = None
    email_address: str | None = None
    interview_status: ApplicantStatus = ApplicantStatus.not_started


class Interview(BaseModel):
    """An interview definition (owned by the authoring screens)."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    job_role: str = ""
    description: str | None = None
    status: str = "Draft"


class Question(BaseModel):
    """A single interview question; read-only within a session."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int
    interview_id: int | None = None
    prompt: str = Field(alias="question")
    difficulty: str = "Easy"


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


class SessionPhase(StrEnum):
    """Top-level interview session phases."""

    welcome = "welcome"
    active = "active"
    completed = "completed"


class RecordingPhase(StrEnum):
    """Recording controller phases. ``stopping`` covers transcription."""

    idle = "idle"
    recording = "recording"
    paused = "paused"
    stopping = "stopping"


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------


class TranscriptionSegment(BaseModel):
    """A single transcription segment with timestamps."""

    text: str
    start: float
    end: float
    avg_logprob: float = 0.0
    no_speech_prob: float = 0.0


class TranscriptionResult(BaseModel):
    """Complete transcription result for one recorded answer."""

    text: str
    language: str = "unknown"
    language_probability: float = 0.0
    confidence: float = 0.0
    duration: float = 0.0
    segments: list[TranscriptionSegment] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Recording / submission results
# ---------------------------------------------------------------------------


class RecordingOutcome(BaseModel):
    """Result of stopping a recording.

    ``accepted`` is False when the transcript failed the quality gate; the
    reason is carried in ``warning``.
    """

    question_id: int
    accepted: bool
    transcript: str = ""
    warning: str | None = None


class SubmissionResult(BaseModel):
    """Result of a successful submission."""

    persisted: list[int] = Field(default_factory=list)
    skipped: list[int] = Field(default_factory=list)
    status: ApplicantStatus = ApplicantStatus.completed


# ---------------------------------------------------------------------------
# Session snapshot (API)
# ---------------------------------------------------------------------------


class SessionState(BaseModel):
    """Snapshot of a live interview session."""

    applicant: Applicant
    interview: Interview
    questions: list[Question] = Field(default_factory=list)
    phase: SessionPhase
    current_index: int | None = None
    current_question: Question | None = None
    recording_phase: RecordingPhase = RecordingPhase.idle
    transcribing: bool = False
    submitting: bool = False
    target_question_id: int | None = None
    answers: dict[int, str] = Field(default_factory=dict)


class StopRecordingResponse(BaseModel):
    """POST .../recording/stop response."""

    outcome: RecordingOutcome
    session: SessionState


class SubmitResponse(BaseModel):
    """POST .../submit response."""

    result: SubmissionResult
    session: SessionState


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


class WebSocketMessageType(StrEnum):
    """Discriminator for messages sent over the audio WebSocket."""

    connected = "connected"
    status = "status"
    error = "error"


class WebSocketMessage(BaseModel):
    """JSON message sent from server to client over WebSocket."""

    type: WebSocketMessageType
    data: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Error
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error envelope returned by the API."""

    detail: str
    code: str
    timestamp: str
