"""Shared pytest fixtures for the interview capture test suite.

Provides collaborator records, a device-free capture, mock STT and
repository providers, and PCM audio helpers.
"""

import asyncio
import struct
from unittest.mock import AsyncMock

import pytest

from interview_capture.core.models import (
    Applicant,
    ApplicantStatus,
    Interview,
    Question,
    TranscriptionResult,
)
from interview_capture.services.audio.capture import DeviceHandle, StreamCapture

# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------


class FakeCapture(StreamCapture):
    """StreamCapture that records acquire/release calls and can fail on acquire.

    ``acquire()`` yields to the event loop once, like a real device open.
    """

    def __init__(self, acquire_error: Exception | None = None) -> None:
        super().__init__(sample_rate=16000, channels=1)
        self.acquire_error = acquire_error
        self.acquired: list[DeviceHandle] = []
        self.released: list[DeviceHandle] = []

    async def acquire(self) -> DeviceHandle:
        await asyncio.sleep(0)
        if self.acquire_error is not None:
            raise self.acquire_error
        handle = await super().acquire()
        self.acquired.append(handle)
        return handle

    async def release(self, handle: DeviceHandle) -> None:
        if not handle.released:
            self.released.append(handle)
        await super().release(handle)


@pytest.fixture
def fake_capture():
    return FakeCapture()


@pytest.fixture
def make_capture():
    """Return the FakeCapture class for tests that need a failing acquire."""
    return FakeCapture


# ---------------------------------------------------------------------------
# Collaborator records
# ---------------------------------------------------------------------------


@pytest.fixture
def applicant():
    return Applicant(
        id=10,
        interview_id=5,
        title="Ms",
        firstname="Ada",
        surname="Lovelace",
        email_address="ada@example.com",
        interview_status=ApplicantStatus.not_started,
    )


@pytest.fixture
def interview():
    return Interview(id=5, title="Backend Engineer", job_role="Engineer", status="Published")


@pytest.fixture
def questions():
    return [
        Question(id=1, interview_id=5, question="Tell us about your experience.", difficulty="Easy"),
        Question(id=2, interview_id=5, question="Describe a hard bug.", difficulty="Intermediate"),
        Question(id=3, interview_id=5, question="Design a rate limiter.", difficulty="Advanced"),
    ]


# ---------------------------------------------------------------------------
# STT / repository mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_stt():
    """Create a mock STT provider for unit testing.

    Returns:
        AsyncMock: A mock implementing the BaseSTT interface with a
        default transcribe response.
    """
    from interview_capture.services.transcription.base import BaseSTT

    stt = AsyncMock(spec=BaseSTT)
    stt.transcribe.return_value = TranscriptionResult(
        text="Five years experience",
        language="en",
        confidence=0.95,
    )
    return stt


@pytest.fixture
def mock_repository(applicant, interview, questions):
    """Create a mock interview data collaborator with loaded records."""
    from interview_capture.services.storage.base import InterviewRepository

    repo = AsyncMock(spec=InterviewRepository)
    repo.load_applicant.return_value = applicant
    repo.load_interview.return_value = interview
    repo.load_questions.return_value = questions
    repo.create_answer_record.return_value = None
    repo.update_applicant_status.return_value = None
    return repo


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_pcm_bytes():
    """Generate 1 second of 440Hz sine-wave PCM audio (16kHz, 16-bit, mono).

    Returns:
        bytes: Raw PCM audio data.
    """
    import math

    sample_rate = 16000
    duration = 1.0
    frequency = 440.0
    amplitude = 16000  # ~50% of max int16

    samples = []
    for i in range(int(sample_rate * duration)):
        value = int(amplitude * math.sin(2 * math.pi * frequency * i / sample_rate))
        samples.append(struct.pack("<h", value))
    return b"".join(samples)


@pytest.fixture
def silent_pcm_bytes():
    """Generate 1 second of silence as PCM audio (16kHz, 16-bit, mono).

    Returns:
        bytes: Raw PCM silence data (all zeros).
    """
    sample_rate = 16000
    return b"\x00\x00" * sample_rate
