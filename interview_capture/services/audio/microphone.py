"""Local microphone capture using sounddevice (PortAudio).

PortAudio calls block (stop and close wait for pending callbacks), so the
stream is opened, stopped and closed in worker threads. Its callback appends
frames to the handle buffer from the audio thread. Pausing stops the
hardware stream rather than discarding frames.
"""

import asyncio
import logging

import numpy as np

from interview_capture.core.config import get_settings
from interview_capture.core.exceptions import (
    DeviceUnavailableError,
    InterviewCaptureError,
    PermissionDeniedError,
)
from interview_capture.services.audio.capture import AudioCapture, DeviceHandle

logger = logging.getLogger(__name__)

_PERMISSION_MARKERS = ("permission", "denied", "not permitted", "not authorized")


def _load_backend():
    """Import sounddevice, which fails with OSError when PortAudio is missing."""
    try:
        import sounddevice
    except OSError as exc:
        raise DeviceUnavailableError(f"Audio backend unavailable: {exc}") from exc
    return sounddevice


def _classify_open_error(exc: Exception) -> InterviewCaptureError:
    """Map a PortAudio failure to the capture error taxonomy."""
    message = str(exc)
    if any(marker in message.lower() for marker in _PERMISSION_MARKERS):
        return PermissionDeniedError(f"Microphone access denied: {message}")
    return DeviceUnavailableError(f"Could not open input device: {message}")


def _parse_device(value: str) -> int | str | None:
    """Settings store the device as text: empty = default, digits = index."""
    value = value.strip()
    if not value:
        return None
    return int(value) if value.isdigit() else value


class MicrophoneCapture(AudioCapture):
    """Capture from a local input device.

    Args:
        device: PortAudio device index or name substring (None = default).
        sample_rate: Requested device sample rate in Hz.
        channels: Requested input channel count.
        block_size: Frames per callback.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        device: int | str | None = None,
        sample_rate: int | None = None,
        channels: int | None = None,
        block_size: int | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._device = device if device is not None else _parse_device(self._settings.capture_device)
        self._sample_rate = sample_rate or self._settings.capture_sample_rate
        self._channels = channels or self._settings.capture_channels
        self._block_size = block_size or self._settings.capture_block_size

    async def acquire(self) -> DeviceHandle:
        handle = DeviceHandle(sample_rate=self._sample_rate, channels=self._channels)
        try:
            handle.stream = await asyncio.to_thread(self._open_stream, handle)
        except InterviewCaptureError:
            raise
        except Exception as exc:
            logger.error("Failed to open input device %s: %s", self._device, exc)
            raise _classify_open_error(exc) from exc
        logger.info(
            "Microphone capture %s started (device=%s, %s Hz, %sch)",
            handle.handle_id,
            self._device if self._device is not None else "default",
            self._sample_rate,
            self._channels,
        )
        return handle

    def _open_stream(self, handle: DeviceHandle):
        """Create and start the PortAudio input stream (blocking)."""
        sd = _load_backend()

        def callback(indata: np.ndarray, frames: int, time_info, status) -> None:
            if status:
                logger.warning("Audio callback status: %s", status)
            # Copy: PortAudio reuses the input buffer
            handle.append(indata.copy())

        stream = sd.InputStream(
            device=self._device,
            channels=self._channels,
            samplerate=self._sample_rate,
            blocksize=self._block_size,
            dtype="float32",
            callback=callback,
        )
        try:
            stream.start()
        except Exception:
            stream.close()
            raise
        return stream

    async def _pause_backend(self, handle: DeviceHandle) -> None:
        if handle.stream is not None:
            await asyncio.to_thread(handle.stream.stop)

    async def _resume_backend(self, handle: DeviceHandle) -> None:
        if handle.stream is not None:
            await asyncio.to_thread(handle.stream.start)

    async def _halt_backend(self, handle: DeviceHandle) -> None:
        # stop() waits for pending callbacks, so the buffer is complete afterwards
        if handle.stream is not None:
            await asyncio.to_thread(handle.stream.stop)

    async def _close_backend(self, handle: DeviceHandle) -> None:
        if handle.stream is not None:
            await asyncio.to_thread(handle.stream.close)
