"""Recording controller: binds audio capture to transcription for one question.

States::

    idle -> recording -> (paused <-> recording) -> stopping -> idle

``stopping`` spans finalization and transcription, so "recording or paused"
and "transcribing" can never hold at the same time. The question a recording
answers is captured when it starts and is never re-read from the session,
so navigating while a recording or transcription is in flight cannot move
the answer to another question.

Usage::

    controller = RecordingController(capture, stt, answers, lambda: flow.current_question)
    await controller.start()
    await controller.pause()
    await controller.resume()
    outcome = await controller.stop()
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from interview_capture.core.exceptions import (
    AlreadyAnsweredError,
    AlreadyRecordingError,
    InvalidStateError,
    QualityGateRejected,
    RecognitionError,
    TranscriptionInProgressError,
)
from interview_capture.core.models import Question, RecordingOutcome, RecordingPhase
from interview_capture.services.answers import AnswerStore
from interview_capture.services.audio.capture import AudioCapture, DeviceHandle
from interview_capture.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

DEFAULT_MIN_TRANSCRIPT_LENGTH = 2


def apply_quality_gate(text: str, min_length: int = DEFAULT_MIN_TRANSCRIPT_LENGTH) -> str:
    """Return the trimmed transcript, or raise if it is too short to keep.

    Raises:
        QualityGateRejected: If the trimmed length is ``min_length`` or less.
    """
    transcript = (text or "").strip()
    if len(transcript) <= min_length:
        raise QualityGateRejected(transcript, min_length)
    return transcript


@dataclass(frozen=True)
class RecordingSession:
    """One recording's resources; the target question is fixed at creation."""

    target_question_id: int
    handle: DeviceHandle
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class RecordingController:
    """Single-slot serializer for record → transcribe → store.

    Args:
        capture: Audio input source.
        stt: Speech-to-text engine.
        answers: Store receiving accepted transcripts.
        current_question: Callable returning the question on screen, or None.
        min_transcript_length: Quality-gate threshold (exclusive).
    """

    def __init__(
        self,
        capture: AudioCapture,
        stt: BaseSTT,
        answers: AnswerStore,
        current_question: Callable[[], Question | None],
        min_transcript_length: int = DEFAULT_MIN_TRANSCRIPT_LENGTH,
    ) -> None:
        self._capture = capture
        self._stt = stt
        self._answers = answers
        self._current_question = current_question
        self._min_length = min_transcript_length
        self._phase = RecordingPhase.idle
        self._session: RecordingSession | None = None
        # Serializes transitions so one awaiting the device cannot race another
        self._transition_lock = asyncio.Lock()

    @property
    def phase(self) -> RecordingPhase:
        return self._phase

    @property
    def transcribing(self) -> bool:
        return self._phase is RecordingPhase.stopping

    @property
    def busy(self) -> bool:
        """True unless idle with no transition (such as a device open) under way."""
        return self._phase is not RecordingPhase.idle or self._transition_lock.locked()

    @property
    def target_question_id(self) -> int | None:
        """Question the live recording is bound to, if any."""
        return self._session.target_question_id if self._session else None

    @property
    def capture(self) -> AudioCapture:
        return self._capture

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self) -> RecordingSession:
        """Acquire the input and begin recording the current question.

        Raises:
            AlreadyRecordingError: A recording is active or paused.
            TranscriptionInProgressError: The previous recording is still transcribing.
            AlreadyAnsweredError: The current question already has an answer.
            InvalidStateError: There is no current question.
            PermissionDeniedError, DeviceUnavailableError: Capture failed;
                the controller stays idle.
        """
        async with self._transition_lock:
            self._check_can_start()
            question = self._current_question()
            if question is None:
                raise InvalidStateError("start recording", "no question is active")
            if question.id in self._answers:
                raise AlreadyAnsweredError(question.id)

            handle = await self._capture.acquire()
            self._session = RecordingSession(target_question_id=question.id, handle=handle)
            self._phase = RecordingPhase.recording

        logger.info("Recording started for question %s", question.id)
        return self._session

    async def pause(self) -> None:
        """Pause capture. Only valid while recording."""
        async with self._transition_lock:
            if self._phase is not RecordingPhase.recording:
                raise InvalidStateError("pause", self._phase.value)
            await self._capture.pause(self._session.handle)
            self._phase = RecordingPhase.paused
        logger.debug("Recording paused for question %s", self.target_question_id)

    async def resume(self) -> None:
        """Resume capture. Only valid while paused."""
        async with self._transition_lock:
            if self._phase is not RecordingPhase.paused:
                raise InvalidStateError("resume", self._phase.value)
            await self._capture.resume(self._session.handle)
            self._phase = RecordingPhase.recording
        logger.debug("Recording resumed for question %s", self.target_question_id)

    async def stop(self) -> RecordingOutcome:
        """Finish the recording, transcribe it and store an accepted transcript.

        The device is released as soon as the audio is finalized. The
        transcript is attributed to the question locked at ``start()``.

        Returns:
            RecordingOutcome; ``accepted`` is False if the quality gate
            discarded the transcript.

        Raises:
            InvalidStateError: Not recording or paused.
            RecognitionError: Transcription failed; no answer is stored.
        """
        async with self._transition_lock:
            if self._phase not in (RecordingPhase.recording, RecordingPhase.paused):
                raise InvalidStateError("stop", self._phase.value)
            session = self._session
            self._phase = RecordingPhase.stopping
            try:
                try:
                    blob = await self._capture.finalize(session.handle)
                finally:
                    await self._capture.release(session.handle)
            except Exception:
                self._reset()
                raise

        logger.info(
            "Recording stopped for question %s (%.1fs), transcribing",
            session.target_question_id,
            blob.duration,
        )
        try:
            try:
                result = await self._stt.transcribe(blob)
            except RecognitionError:
                logger.warning(
                    "Transcription failed for question %s", session.target_question_id
                )
                raise
            except Exception as exc:
                logger.exception(
                    "Unexpected transcription failure for question %s",
                    session.target_question_id,
                )
                raise RecognitionError(detail=f"Transcription failed: {exc}") from exc
            return self._accept(session.target_question_id, result.text)
        finally:
            self._reset()

    async def abandon(self) -> None:
        """Drop a live recording without transcribing it.

        Releases the device if recording or paused. A transcription already
        in flight cannot be aborted and is left to finish.
        """
        async with self._transition_lock:
            if self._phase not in (RecordingPhase.recording, RecordingPhase.paused):
                return
            session = self._session
            try:
                await self._capture.release(session.handle)
            finally:
                self._reset()
        logger.info("Recording for question %s abandoned", session.target_question_id)

    def clear_answer(self, question_id: int) -> bool:
        """Remove a stored answer so the question can be recorded again."""
        removed = self._answers.discard(question_id)
        if removed:
            logger.info("Cleared answer for question %s", question_id)
        return removed

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_can_start(self) -> None:
        if self._phase is RecordingPhase.stopping:
            raise TranscriptionInProgressError()
        if self._phase is not RecordingPhase.idle:
            raise AlreadyRecordingError()

    def _accept(self, question_id: int, text: str) -> RecordingOutcome:
        try:
            transcript = apply_quality_gate(text, self._min_length)
        except QualityGateRejected as rejected:
            logger.warning(
                "Discarded short transcript for question %s: %r",
                question_id,
                rejected.transcript,
            )
            return RecordingOutcome(
                question_id=question_id,
                accepted=False,
                transcript=rejected.transcript,
                warning=rejected.detail,
            )

        self._answers.put(question_id, transcript)
        logger.info("Saved transcript for question %s (%d chars)", question_id, len(transcript))
        return RecordingOutcome(question_id=question_id, accepted=True, transcript=transcript)

    def _reset(self) -> None:
        self._session = None
        self._phase = RecordingPhase.idle
