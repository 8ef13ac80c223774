"""Whisper STT implementation using faster-whisper.

Answers are transcribed in fixed windows (30 s with 5 s overlap by default)
so long answers keep a bounded recognition context. The WhisperModel is
loaded once per process behind a shared future: concurrent first calls all
await the same load instead of each constructing a model.
"""

import asyncio
import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import NamedTuple

from faster_whisper import WhisperModel

from interview_capture.core.config import get_settings
from interview_capture.core.exceptions import RecognitionError
from interview_capture.core.models import TranscriptionResult, TranscriptionSegment
from interview_capture.services.audio.capture import AudioBlob
from interview_capture.services.audio.processor import AudioProcessor
from interview_capture.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

_model_future: Future | None = None
_model_lock = threading.Lock()
_loader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="whisper-loader")


def reset_model_cache() -> None:
    """Forget the cached model so the next call loads again (test helper)."""
    global _model_future
    with _model_lock:
        _model_future = None


class TranscriptionWindow(NamedTuple):
    """One slice of the answer audio and the time range it is authoritative for."""

    start: int  # first sample (inclusive)
    end: int  # last sample (exclusive)
    keep_from: float  # seconds, absolute
    keep_to: float  # seconds, absolute


def plan_windows(
    n_samples: int,
    sample_rate: int,
    window_seconds: float = 30.0,
    overlap_seconds: float = 5.0,
) -> list[TranscriptionWindow]:
    """Split ``n_samples`` into overlapping windows.

    Consecutive windows share ``overlap_seconds`` of audio. Each window owns
    the segments whose midpoint lies between the middles of its overlaps, so
    speech in an overlap is kept exactly once.

    Raises:
        ValueError: If the overlap is not shorter than the window.
    """
    if not 0 <= overlap_seconds < window_seconds:
        raise ValueError(
            f"Overlap ({overlap_seconds}s) must be shorter than the window ({window_seconds}s)"
        )
    window = int(window_seconds * sample_rate)
    step = window - int(overlap_seconds * sample_rate)
    half_overlap = overlap_seconds / 2

    if n_samples <= window:
        return [TranscriptionWindow(0, n_samples, 0.0, math.inf)]

    windows: list[TranscriptionWindow] = []
    start = 0
    while True:
        end = min(start + window, n_samples)
        last = end >= n_samples
        keep_from = 0.0 if start == 0 else start / sample_rate + half_overlap
        keep_to = math.inf if last else end / sample_rate - half_overlap
        windows.append(TranscriptionWindow(start, end, keep_from, keep_to))
        if last:
            return windows
        start += step


class WhisperSTT(BaseSTT):
    """Speech-to-text provider using faster-whisper (CTranslate2).

    Args:
        model_size: Whisper model size (tiny, base, small, medium, large-v3).
        device: Computation device ("cpu" or "cuda").
        compute_type: CTranslate2 compute type ("int8", "float16", etc.).
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        model_size: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_size = model_size or self._settings.whisper_model
        self._device = device or self._settings.whisper_device
        self._compute_type = compute_type or self._settings.whisper_compute_type
        self._language = self._settings.whisper_default_language or None
        self._beam_size = self._settings.whisper_beam_size
        self._window_seconds = self._settings.transcription_window_seconds
        self._overlap_seconds = self._settings.transcription_overlap_seconds
        self._silence_threshold = self._settings.silence_rms_threshold
        self._processor = AudioProcessor()

    def _load_model(self) -> WhisperModel:
        """Construct the WhisperModel (blocking; runs on the loader thread)."""
        logger.info(
            "Loading Whisper model: %s (device=%s, compute=%s)",
            self._model_size,
            self._device,
            self._compute_type,
        )
        return WhisperModel(
            self._model_size,
            device=self._device,
            compute_type=self._compute_type,
        )

    async def _get_model(self) -> WhisperModel:
        """Return the process-wide WhisperModel, loading it on first use.

        Every caller awaits the same future, so only one load ever runs. A
        failed load is forgotten so the next call can retry.
        """
        global _model_future  # noqa: PLW0603
        with _model_lock:
            if _model_future is None:
                _model_future = _loader.submit(self._load_model)
            future = _model_future
        try:
            # shield: one cancelled caller must not cancel the shared load
            return await asyncio.shield(asyncio.wrap_future(future))
        except Exception as exc:
            with _model_lock:
                if _model_future is future:
                    _model_future = None
            raise RecognitionError(detail=f"Failed to load Whisper model: {exc}") from exc

    @staticmethod
    def _run_transcription(
        model: WhisperModel,
        audio,
        language: str | None = None,
        beam_size: int = 5,
        vad_filter: bool = True,
    ) -> tuple:
        """Run synchronous transcription (CPU-bound).

        Must be called via asyncio.to_thread(). The segment iterator is
        materialized into a list inside this function to avoid CTranslate2
        thread-safety issues.

        Returns:
            Tuple of (list[segment_objects], info_object).
        """
        segments_iter, info = model.transcribe(
            audio,
            language=language,
            beam_size=beam_size,
            vad_filter=vad_filter,
        )
        # Materialize the generator in the same thread to avoid
        # CTranslate2 cross-thread issues.
        segments = list(segments_iter)
        return segments, info

    @staticmethod
    def _logprob_to_confidence(avg_logprob: float) -> float:
        """Convert average log probability to a 0-1 confidence score."""
        return max(0.0, min(1.0, math.exp(avg_logprob)))

    @staticmethod
    def _segments_to_models(segments, offset: float = 0.0) -> list[TranscriptionSegment]:
        """Convert faster-whisper segments to Pydantic models on the answer timeline."""
        return [
            TranscriptionSegment(
                text=seg.text.strip(),
                start=seg.start + offset,
                end=seg.end + offset,
                avg_logprob=seg.avg_logprob,
                no_speech_prob=seg.no_speech_prob,
            )
            for seg in segments
            if seg.text.strip()
        ]

    async def transcribe(self, blob: AudioBlob, **kwargs) -> TranscriptionResult:
        """Transcribe a finalized answer.

        Args:
            blob: 16 kHz mono float32 audio.
            **kwargs: Optional keys: language, beam_size, vad_filter.

        Returns:
            TranscriptionResult; empty text when the audio holds no speech.

        Raises:
            RecognitionError: If the model fails to load or to decode.
        """
        if blob.is_empty or self._processor.is_silent(blob.samples, self._silence_threshold):
            logger.info("No speech detected in %.2fs of audio", blob.duration)
            return TranscriptionResult(text="", duration=blob.duration)

        model = await self._get_model()
        language = kwargs.get("language", self._language)
        windows = plan_windows(
            len(blob.samples),
            blob.sample_rate,
            self._window_seconds,
            self._overlap_seconds,
        )

        kept: list[TranscriptionSegment] = []
        detected_language = "unknown"
        language_probability = 0.0
        try:
            for window in windows:
                segments, info = await asyncio.to_thread(
                    self._run_transcription,
                    model,
                    blob.samples[window.start : window.end],
                    language=language,
                    beam_size=kwargs.get("beam_size", self._beam_size),
                    vad_filter=kwargs.get("vad_filter", True),
                )
                if info.language_probability >= language_probability:
                    detected_language = info.language or detected_language
                    language_probability = info.language_probability
                offset = window.start / blob.sample_rate
                for seg in self._segments_to_models(segments, offset):
                    midpoint = (seg.start + seg.end) / 2
                    if window.keep_from <= midpoint < window.keep_to:
                        kept.append(seg)
        except Exception as exc:
            raise RecognitionError(detail=f"Whisper transcription failed: {exc}") from exc

        logger.debug("Transcribed %.2fs in %d window(s)", blob.duration, len(windows))

        avg_confidence = 0.0
        if kept:
            avg_logprob = sum(s.avg_logprob for s in kept) / len(kept)
            avg_confidence = self._logprob_to_confidence(avg_logprob)

        return TranscriptionResult(
            text=" ".join(seg.text for seg in kept),
            language=detected_language,
            language_probability=language_probability,
            confidence=avg_confidence,
            duration=blob.duration,
            segments=kept,
        )
