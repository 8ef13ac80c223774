"""Interview capture: voice-answered interview sessions with speech-to-text."""

__version__ = "0.1.0"
