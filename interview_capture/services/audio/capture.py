"""Audio capture contract and the client-fed stream implementation.

An ``AudioCapture`` hands out one ``DeviceHandle`` per recording. Captured
frames accumulate in the handle's append-only buffer until ``finalize()``
turns them into an ``AudioBlob`` (exactly once). ``release()`` stops the
backend and is safe to call on every exit path.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import numpy as np

from interview_capture.core.config import get_settings
from interview_capture.core.exceptions import InvalidStateError
from interview_capture.services.audio.processor import TARGET_SAMPLE_RATE, AudioProcessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioBlob:
    """Finalized answer audio: float32 mono samples at 16 kHz."""

    samples: np.ndarray
    sample_rate: int = TARGET_SAMPLE_RATE

    @property
    def duration(self) -> float:
        """Length of the audio in seconds."""
        return len(self.samples) / self.sample_rate

    @property
    def is_empty(self) -> bool:
        return len(self.samples) == 0


@dataclass
class DeviceHandle:
    """One recording's hold on an input source.

    Attributes:
        sample_rate: Rate of the frames appended to the buffer.
        channels: Channel count of the frames appended to the buffer.
        stream: Backend stream object (``sounddevice.InputStream``) or None.
    """

    sample_rate: int
    channels: int
    handle_id: str = field(default_factory=lambda: uuid4().hex[:8])
    stream: Any = None
    paused: bool = False
    finalized: bool = False
    released: bool = False
    _chunks: list[np.ndarray] = field(default_factory=list, repr=False)

    @property
    def accepting(self) -> bool:
        """True while captured frames should be buffered."""
        return not (self.paused or self.finalized or self.released)

    @property
    def frame_count(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)

    def append(self, frames: np.ndarray) -> None:
        """Append a ``(frames, channels)`` block if the handle is accepting."""
        if self.accepting and len(frames):
            self._chunks.append(frames)

    def drain(self) -> np.ndarray:
        """Return every buffered frame as one ``(frames, channels)`` array."""
        if not self._chunks:
            return np.zeros((0, self.channels), dtype=np.float32)
        frames = np.concatenate(self._chunks, axis=0)
        self._chunks = []
        return frames


class AudioCapture(ABC):
    """Interface every audio input source must implement.

    Subclasses implement ``acquire()`` and may override the backend hooks
    ``_pause_backend``, ``_resume_backend``, ``_halt_backend`` and
    ``_close_backend``; buffering and finalization live here.
    """

    @abstractmethod
    async def acquire(self) -> DeviceHandle:
        """Open the input and return a handle that is already capturing.

        Raises:
            PermissionDeniedError: The platform refused access.
            DeviceUnavailableError: No usable input exists.
        """

    async def pause(self, handle: DeviceHandle) -> None:
        """Stop buffering audio until ``resume()``."""
        if not handle.accepting:
            raise InvalidStateError("pause capture", "not capturing")
        handle.paused = True
        await self._pause_backend(handle)

    async def resume(self, handle: DeviceHandle) -> None:
        """Continue buffering after ``pause()``."""
        if not handle.paused or handle.finalized or handle.released:
            raise InvalidStateError("resume capture", "not paused")
        handle.paused = False
        try:
            await self._resume_backend(handle)
        except Exception:
            handle.paused = True
            raise

    async def finalize(self, handle: DeviceHandle) -> AudioBlob:
        """Close the buffer and convert it for recognition. Callable once per handle."""
        if handle.finalized:
            raise InvalidStateError("finalize", "already finalized")
        await self._halt_backend(handle)
        handle.finalized = True
        frames = handle.drain()
        processor = AudioProcessor(sample_rate=handle.sample_rate, channels=handle.channels)
        blob = AudioBlob(samples=processor.prepare(frames))
        logger.debug("Finalized handle %s: %.2fs of audio", handle.handle_id, blob.duration)
        return blob

    async def release(self, handle: DeviceHandle) -> None:
        """Stop the backend and free the handle. Idempotent."""
        if handle.released:
            return
        handle.released = True
        try:
            await self._close_backend(handle)
        finally:
            handle.stream = None
        logger.debug("Released capture handle %s", handle.handle_id)

    # -- backend hooks --

    async def _pause_backend(self, handle: DeviceHandle) -> None:
        pass

    async def _resume_backend(self, handle: DeviceHandle) -> None:
        pass

    async def _halt_backend(self, handle: DeviceHandle) -> None:
        pass

    async def _close_backend(self, handle: DeviceHandle) -> None:
        pass


class StreamCapture(AudioCapture):
    """Capture fed by a client streaming raw PCM (16-bit little-endian).

    The client (e.g. a browser over WebSocket) owns the microphone; this
    side only buffers what ``push()`` receives while a handle is live.

    Args:
        sample_rate: Rate of the pushed PCM (defaults to settings).
        channels: Interleaved channel count of the pushed PCM.
    """

    def __init__(
        self,
        sample_rate: int | None = None,
        channels: int | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._sample_rate = sample_rate or self._settings.capture_sample_rate
        self._channels = channels or self._settings.capture_channels
        self._processor = AudioProcessor(self._sample_rate, 2, self._channels)
        self._active: DeviceHandle | None = None
        self._remainder = bytearray()

    @property
    def active(self) -> DeviceHandle | None:
        """The handle currently receiving pushed audio, if any."""
        return self._active

    async def acquire(self) -> DeviceHandle:
        handle = DeviceHandle(sample_rate=self._sample_rate, channels=self._channels)
        self._active = handle
        self._remainder.clear()
        logger.info("Stream capture %s opened (%s Hz)", handle.handle_id, self._sample_rate)
        return handle

    def push(self, data: bytes) -> bool:
        """Buffer pushed PCM bytes.

        Returns:
            True if the bytes were buffered, False if no handle is accepting.
        """
        handle = self._active
        if handle is None or not handle.accepting:
            return False
        self._remainder.extend(data)
        # Frames may be split across pushes; keep the unaligned tail
        frame_size = 2 * self._channels
        usable = len(self._remainder) - (len(self._remainder) % frame_size)
        if usable:
            handle.append(self._processor.pcm_to_ndarray(bytes(self._remainder[:usable])))
            del self._remainder[:usable]
        return True

    async def _pause_backend(self, handle: DeviceHandle) -> None:
        self._remainder.clear()

    async def _halt_backend(self, handle: DeviceHandle) -> None:
        self._remainder.clear()

    async def _close_backend(self, handle: DeviceHandle) -> None:
        if self._active is handle:
            self._active = None
