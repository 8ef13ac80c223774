"""Registry of live interview sessions, keyed by applicant id.

A session lives from page entry until the applicant leaves; it is never
persisted mid-way, so opening a session again for the same applicant
discards the old one and starts over from the welcome screen.

Usage::

    from interview_capture.services import orchestrator

    flow = await orchestrator.open_session(applicant_id)
    flow.begin()
    await orchestrator.close_session(applicant_id)
"""

import logging

from interview_capture.core.config import get_settings
from interview_capture.core.exceptions import SessionNotFoundError
from interview_capture.services.audio import create_capture
from interview_capture.services.audio.capture import AudioCapture
from interview_capture.services.session import SessionFlow, load_session
from interview_capture.services.storage import create_repository
from interview_capture.services.storage.base import InterviewRepository
from interview_capture.services.transcription import create_stt
from interview_capture.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level session management
# ---------------------------------------------------------------------------

_sessions: dict[int, SessionFlow] = {}
_repository: InterviewRepository | None = None
_stt: BaseSTT | None = None


def _default_repository() -> InterviewRepository:
    global _repository
    if _repository is None:
        _repository = create_repository()
    return _repository


def _default_stt() -> BaseSTT:
    global _stt
    if _stt is None:
        _stt = create_stt(provider=get_settings().whisper_provider)
    return _stt


async def open_session(
    applicant_id: int,
    repository: InterviewRepository | None = None,
    capture: AudioCapture | None = None,
    stt: BaseSTT | None = None,
) -> SessionFlow:
    """Load and register a fresh session for ``applicant_id``.

    Components not supplied are built from settings. Any session already
    open for the applicant is closed first.

    Raises:
        ApplicantNotFoundError, InterviewNotFoundError, TransportError: Load failed.
    """
    settings = get_settings()
    flow = await load_session(
        applicant_id,
        repository=repository or _default_repository(),
        capture=capture or create_capture(settings.capture_provider),
        stt=stt or _default_stt(),
        min_transcript_length=settings.min_transcript_length,
    )

    previous = _sessions.pop(applicant_id, None)
    if previous is not None:
        logger.info("Replacing open session for applicant %s", applicant_id)
        await previous.close()

    _sessions[applicant_id] = flow
    logger.info("Opened session for applicant %s", applicant_id)
    return flow


def get_session(applicant_id: int) -> SessionFlow:
    """Return the live session for ``applicant_id``.

    Raises:
        SessionNotFoundError: No session is open.
    """
    try:
        return _sessions[applicant_id]
    except KeyError:
        raise SessionNotFoundError(applicant_id) from None


def active_sessions() -> list[int]:
    """Applicant ids with an open session."""
    return list(_sessions)


async def close_session(applicant_id: int) -> None:
    """Close and forget the session, releasing any live recording."""
    flow = _sessions.pop(applicant_id, None)
    if flow is None:
        return
    await flow.close()
    logger.info("Closed session for applicant %s", applicant_id)


async def cleanup() -> None:
    """Close every session and the shared repository (called during app shutdown)."""
    global _repository
    for applicant_id in list(_sessions):
        try:
            await close_session(applicant_id)
        except Exception:
            logger.exception("Failed to close session for applicant %s", applicant_id)
    if _repository is not None:
        await _repository.aclose()
        _repository = None
