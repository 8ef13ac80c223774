"""Unit tests for windowed Whisper transcription and the shared model load."""

import asyncio
import math
import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np
import pytest

from interview_capture.core.exceptions import RecognitionError
from interview_capture.services.audio.capture import AudioBlob
from interview_capture.services.transcription import create_stt, whisper
from interview_capture.services.transcription.whisper import WhisperSTT, plan_windows

SR = 16000


@pytest.fixture(autouse=True)
def _fresh_model_cache():
    whisper.reset_model_cache()
    yield
    whisper.reset_model_cache()


def _segment(text, start, end, avg_logprob=-0.1):
    return SimpleNamespace(
        text=text, start=start, end=end, avg_logprob=avg_logprob, no_speech_prob=0.01
    )


def _info(language="en", probability=0.9):
    return SimpleNamespace(language=language, language_probability=probability)


def _speech(seconds: float) -> AudioBlob:
    t = np.arange(int(seconds * SR)) / SR
    return AudioBlob(samples=(0.5 * np.sin(2 * np.pi * 220 * t)).astype(np.float32))


# ---------------------------------------------------------------------------
# plan_windows
# ---------------------------------------------------------------------------


def test_short_audio_is_one_window():
    windows = plan_windows(10 * SR, SR)

    assert windows == [whisper.TranscriptionWindow(0, 10 * SR, 0.0, math.inf)]


def test_long_audio_windows_overlap():
    windows = plan_windows(70 * SR, SR, window_seconds=30, overlap_seconds=5)

    assert [(w.start // SR, w.end // SR) for w in windows] == [(0, 30), (25, 55), (50, 70)]
    assert windows[0].keep_from == 0.0
    assert windows[0].keep_to == 27.5
    assert windows[1].keep_from == 27.5
    assert windows[1].keep_to == 52.5
    assert windows[2].keep_from == 52.5
    assert windows[2].keep_to == math.inf


def test_windows_cover_all_samples():
    n = 95 * SR + 123
    windows = plan_windows(n, SR)

    assert windows[0].start == 0
    assert windows[-1].end == n
    for prev, cur in zip(windows, windows[1:]):
        assert cur.start < prev.end


def test_overlap_must_be_shorter_than_window():
    with pytest.raises(ValueError, match="shorter than the window"):
        plan_windows(60 * SR, SR, window_seconds=10, overlap_seconds=10)


# ---------------------------------------------------------------------------
# WhisperSTT
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_model_cls(monkeypatch):
    model = MagicMock()
    model.transcribe.return_value = (iter([_segment(" Hello there. ", 0.0, 1.2)]), _info())
    cls = MagicMock(return_value=model)
    monkeypatch.setattr(whisper, "WhisperModel", cls)
    return cls


async def test_silent_audio_skips_model(fake_model_cls):
    stt = WhisperSTT(model_size="tiny")

    result = await stt.transcribe(AudioBlob(samples=np.zeros(SR, dtype=np.float32)))

    assert result.text == ""
    assert result.duration == pytest.approx(1.0)
    fake_model_cls.assert_not_called()


async def test_empty_audio_returns_empty_text(fake_model_cls):
    stt = WhisperSTT(model_size="tiny")

    result = await stt.transcribe(AudioBlob(samples=np.zeros(0, dtype=np.float32)))

    assert result.text == ""
    fake_model_cls.assert_not_called()


async def test_transcribe_short_answer(fake_model_cls):
    stt = WhisperSTT(model_size="tiny", device="cpu", compute_type="int8")

    result = await stt.transcribe(_speech(2.0))

    assert result.text == "Hello there."
    assert result.language == "en"
    assert 0.0 < result.confidence <= 1.0
    assert len(result.segments) == 1
    fake_model_cls.assert_called_once_with("tiny", device="cpu", compute_type="int8")


async def test_concurrent_first_calls_load_model_once(monkeypatch):
    gate = threading.Event()
    model = MagicMock()
    model.transcribe.side_effect = lambda *a, **k: (iter([_segment("ok", 0.0, 0.5)]), _info())

    def slow_model(*args, **kwargs):
        gate.wait(timeout=5)
        return model

    cls = MagicMock(side_effect=slow_model)
    monkeypatch.setattr(whisper, "WhisperModel", cls)
    stt_a = WhisperSTT(model_size="tiny")
    stt_b = WhisperSTT(model_size="tiny")

    tasks = [
        asyncio.create_task(stt_a.transcribe(_speech(1.0))),
        asyncio.create_task(stt_b.transcribe(_speech(1.0))),
    ]
    await asyncio.sleep(0.05)
    gate.set()
    results = await asyncio.gather(*tasks)

    assert [r.text for r in results] == ["ok", "ok"]
    assert cls.call_count == 1


async def test_failed_load_is_retried_on_next_call(monkeypatch):
    model = MagicMock()
    model.transcribe.return_value = (iter([_segment("second try", 0.0, 1.0)]), _info())
    cls = MagicMock(side_effect=[RuntimeError("download failed"), model])
    monkeypatch.setattr(whisper, "WhisperModel", cls)
    stt = WhisperSTT(model_size="tiny")

    with pytest.raises(RecognitionError, match="download failed"):
        await stt.transcribe(_speech(1.0))

    result = await stt.transcribe(_speech(1.0))
    assert result.text == "second try"
    assert cls.call_count == 2


async def test_long_answer_keeps_overlap_speech_once(monkeypatch):
    """A sentence inside the 25-30 s overlap is heard by both windows but kept once."""
    per_window = [
        # window 0 covers 0-30 s
        [_segment("First part.", 2.0, 6.0), _segment("Overlap sentence.", 25.5, 27.0)],
        # window 1 covers 25-40 s (offsets relative to 25 s)
        [_segment("Overlap sentence.", 0.5, 2.0), _segment("Final part.", 8.0, 12.0)],
    ]
    model = MagicMock()
    model.transcribe.side_effect = [(iter(segs), _info()) for segs in per_window]
    monkeypatch.setattr(whisper, "WhisperModel", MagicMock(return_value=model))
    stt = WhisperSTT(model_size="tiny")

    result = await stt.transcribe(_speech(40.0))

    assert result.text == "First part. Overlap sentence. Final part."
    assert model.transcribe.call_count == 2
    assert [s.start for s in result.segments] == [2.0, 25.5, 33.0]


async def test_inference_failure_raises_recognition_error(fake_model_cls):
    fake_model_cls.return_value.transcribe.side_effect = RuntimeError("CUDA out of memory")
    stt = WhisperSTT(model_size="tiny")

    with pytest.raises(RecognitionError, match="CUDA out of memory"):
        await stt.transcribe(_speech(1.0))


async def test_language_override_is_passed_through(fake_model_cls):
    stt = WhisperSTT(model_size="tiny")

    await stt.transcribe(_speech(1.0), language="de")

    assert fake_model_cls.return_value.transcribe.call_args.kwargs["language"] == "de"


def test_create_stt_providers():
    assert isinstance(create_stt("whisper", model_size="tiny"), WhisperSTT)
    assert isinstance(create_stt("local", model_size="tiny"), WhisperSTT)
    with pytest.raises(ValueError, match="Unknown STT provider"):
        create_stt("cloud")
