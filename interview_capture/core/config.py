"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Interview capture settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        capture_provider: Audio source ("microphone" for a local input device,
            "stream" for PCM pushed by a client over WebSocket).
        whisper_provider: STT backend ("local" for faster-whisper).
        interview_api_url: Base URL of the PostgREST interview API.
        min_transcript_length: Transcripts this short (after trimming) are discarded.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Audio capture ---
    capture_provider: str = "microphone"
    capture_device: str = ""  # Empty = system default input device
    capture_sample_rate: int = 16000  # Native rate requested from the device / sent by clients
    capture_channels: int = 1
    capture_block_size: int = 1024  # Frames per sounddevice callback

    # --- Whisper STT ---
    # Speech-to-text configuration using faster-whisper
    whisper_provider: str = "local"
    whisper_model: str = "base.en"  # Model size: tiny, base, small, medium, large-v3 (.en = English only)
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    whisper_default_language: str = "en"  # Empty = auto-detect; ISO 639-1 code e.g. "ko", "en"
    whisper_beam_size: int = 5
    transcription_window_seconds: float = 30.0
    transcription_overlap_seconds: float = 5.0
    silence_rms_threshold: float = 0.005  # RMS below this is treated as "no speech"

    # --- Session ---
    min_transcript_length: int = 2

    # --- Interview API (PostgREST) ---
    interview_api_url: str = "http://localhost:3000"
    interview_api_token: str = ""  # Bearer token; empty = no Authorization header
    interview_api_username: str = ""  # Added to every write body
    interview_api_timeout: float = 30.0

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 8000
    log_level: str = "INFO"  # Python logging level


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
