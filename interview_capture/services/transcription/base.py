"""
Abstract base class for Speech-to-Text providers.

All STT implementations must implement this interface, enabling
provider-agnostic transcription in the recording controller.
"""

from abc import ABC, abstractmethod

from interview_capture.core.models import TranscriptionResult
from interview_capture.services.audio.capture import AudioBlob


class BaseSTT(ABC):
    """Interface that every STT provider must implement."""

    @abstractmethod
    async def transcribe(self, blob: AudioBlob, **kwargs) -> TranscriptionResult:
        """Transcribe one finalized answer recording.

        Args:
            blob: 16 kHz mono float32 audio.
            **kwargs: Provider-specific options (language, beam_size, etc.).

        Returns:
            TranscriptionResult; ``text`` is empty when no speech was found.

        Raises:
            RecognitionError: If decoding or inference fails.
        """
