"""
Audio module - Capture sources and audio conversion utilities.

Factory function for creating capture instances based on provider configuration.
"""

from .capture import AudioBlob, AudioCapture, DeviceHandle, StreamCapture
from .processor import AudioProcessor

__all__ = [
    "AudioBlob",
    "AudioCapture",
    "AudioProcessor",
    "DeviceHandle",
    "StreamCapture",
    "create_capture",
]


def create_capture(provider: str, **kwargs) -> AudioCapture:
    """
    Factory function to create an audio capture based on provider.

    Args:
        provider: Capture provider name ("microphone" or "stream")
        **kwargs: Provider-specific configuration

    Returns:
        AudioCapture implementation instance

    Raises:
        ValueError: If provider is unknown
    """
    if provider == "microphone":
        from .microphone import MicrophoneCapture
        return MicrophoneCapture(**kwargs)
    elif provider == "stream":
        return StreamCapture(**kwargs)
    else:
        raise ValueError(f"Unknown capture provider: {provider}")
