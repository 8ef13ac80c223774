"""Audio processing utilities for captured answers.

Converts raw PCM bytes and device frames to the 16 kHz mono float32
representation the speech recognizer expects, and provides silence detection.
"""

import numpy as np

TARGET_SAMPLE_RATE = 16000


class AudioProcessor:
    """Handles PCM audio data conversion and analysis.

    Provides utilities for converting raw PCM bytes to numpy arrays,
    down-mixing, resampling and detecting silence via RMS energy.
    """

    def __init__(
        self,
        sample_rate: int = TARGET_SAMPLE_RATE,
        sample_width: int = 2,
        channels: int = 1,
    ) -> None:
        """Initialize the audio processor.

        Args:
            sample_rate: Sample rate of the incoming audio in Hz.
            sample_width: Bytes per sample (2 = 16-bit signed PCM).
            channels: Number of interleaved audio channels.
        """
        self.sample_rate = sample_rate
        self.sample_width = sample_width
        self.channels = channels

    def pcm_to_ndarray(self, pcm_data: bytes) -> np.ndarray:
        """Convert raw PCM bytes (16-bit signed) to a float32 frame array.

        Args:
            pcm_data: Raw interleaved PCM bytes.

        Returns:
            Float32 array of shape ``(frames, channels)`` normalized to [-1.0, 1.0].

        Raises:
            ValueError: If data length is not aligned to sample frame size.
        """
        frame_size = self.sample_width * self.channels
        if len(pcm_data) % frame_size != 0:
            raise ValueError(
                f"PCM data length ({len(pcm_data)}) is not aligned to frame size ({frame_size})"
            )
        # Convert 16-bit signed integers to float32 in [-1.0, 1.0] range
        samples = np.frombuffer(pcm_data, dtype=np.int16).astype(np.float32) / 32768.0
        return samples.reshape(-1, self.channels)

    @staticmethod
    def to_mono(frames: np.ndarray) -> np.ndarray:
        """Average a ``(frames, channels)`` array down to one channel."""
        if frames.ndim == 1:
            return frames.astype(np.float32, copy=False)
        return frames.mean(axis=1).astype(np.float32)

    def resample(self, audio: np.ndarray, target_rate: int = TARGET_SAMPLE_RATE) -> np.ndarray:
        """Linearly resample mono audio from ``self.sample_rate`` to ``target_rate``."""
        if self.sample_rate == target_rate or len(audio) == 0:
            return audio.astype(np.float32, copy=False)
        duration = len(audio) / self.sample_rate
        target_length = max(int(round(duration * target_rate)), 1)
        source_times = np.arange(len(audio)) / self.sample_rate
        target_times = np.arange(target_length) / target_rate
        return np.interp(target_times, source_times, audio).astype(np.float32)

    def prepare(self, frames: np.ndarray) -> np.ndarray:
        """Down-mix and resample captured frames for recognition."""
        return self.resample(self.to_mono(frames))

    def is_silent(self, audio: np.ndarray, threshold: float = 0.01) -> bool:
        """Check if an audio segment is silence based on RMS energy.

        Args:
            audio: Float32 numpy array of audio samples.
            threshold: RMS energy below this value is considered silence.

        Returns:
            True if the audio is silence.
        """
        if len(audio) == 0:
            return True
        # RMS (Root Mean Square) measures signal energy; low RMS = silence
        rms = np.sqrt(np.mean(audio**2))
        return float(rms) < threshold
