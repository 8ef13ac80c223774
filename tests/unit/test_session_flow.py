"""Unit tests for SessionFlow navigation, recording guards and submission."""

import asyncio

import pytest

from interview_capture.core.exceptions import (
    ApplicantNotFoundError,
    InvalidStateError,
    NoQuestionsError,
    PartialSubmissionError,
    SubmissionInProgressError,
    TransportError,
)
from interview_capture.core.models import (
    ApplicantStatus,
    RecordingPhase,
    SessionPhase,
    TranscriptionResult,
)
from interview_capture.services.session import SessionFlow, load_session


@pytest.fixture
def flow(applicant, interview, questions, fake_capture, mock_stt, mock_repository):
    return SessionFlow(
        applicant=applicant,
        interview=interview,
        questions=questions,
        capture=fake_capture,
        stt=mock_stt,
        repository=mock_repository,
        min_transcript_length=2,
    )


async def _answer_current(flow, stt, text="A reasonable answer"):
    stt.transcribe.return_value = TranscriptionResult(text=text)
    await flow.start_recording()
    return await flow.stop_recording()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


async def test_load_session_chains_lookups(mock_repository, fake_capture, mock_stt):
    flow = await load_session(10, mock_repository, fake_capture, mock_stt)

    mock_repository.load_applicant.assert_awaited_once_with(10)
    mock_repository.load_interview.assert_awaited_once_with(5)
    mock_repository.load_questions.assert_awaited_once_with(5)
    assert flow.phase is SessionPhase.welcome
    assert [q.id for q in flow.questions] == [1, 2, 3]


async def test_load_session_unknown_applicant(mock_repository, fake_capture, mock_stt):
    mock_repository.load_applicant.side_effect = ApplicantNotFoundError(99)

    with pytest.raises(ApplicantNotFoundError):
        await load_session(99, mock_repository, fake_capture, mock_stt)
    mock_repository.load_interview.assert_not_awaited()


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


def test_welcome_state(flow):
    state = flow.state()

    assert state.phase is SessionPhase.welcome
    assert state.current_index is None
    assert state.current_question is None
    assert state.recording_phase is RecordingPhase.idle


def test_begin_shows_first_question(flow):
    flow.begin()

    assert flow.phase is SessionPhase.active
    assert flow.current_index == 0
    assert flow.current_question.id == 1


def test_begin_twice_is_rejected(flow):
    flow.begin()
    with pytest.raises(InvalidStateError, match="the session is active"):
        flow.begin()


def test_begin_without_questions(applicant, interview, fake_capture, mock_stt, mock_repository):
    flow = SessionFlow(applicant, interview, [], fake_capture, mock_stt, mock_repository, 2)

    with pytest.raises(NoQuestionsError):
        flow.begin()
    assert flow.phase is SessionPhase.welcome


def test_advance_allows_skipping(flow):
    flow.begin()
    flow.advance()
    flow.advance()

    assert flow.current_index == 2
    assert flow.is_last_question
    with pytest.raises(InvalidStateError, match="last question"):
        flow.advance()


def test_advance_requires_active(flow):
    with pytest.raises(InvalidStateError):
        flow.advance()


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


async def test_recording_requires_active(flow):
    with pytest.raises(InvalidStateError, match="start recording"):
        await flow.start_recording()


async def test_record_answer_updates_state(flow, mock_stt):
    flow.begin()

    outcome = await _answer_current(flow, mock_stt)

    assert outcome.accepted
    assert flow.state().answers == {1: "A reasonable answer"}


async def test_navigation_during_transcription_keeps_target(flow, mock_stt):
    release = asyncio.Event()

    async def slow_transcribe(blob, **kwargs):
        await release.wait()
        return TranscriptionResult(text="First question answer")

    mock_stt.transcribe.side_effect = slow_transcribe
    flow.begin()
    await flow.start_recording()
    stop_task = asyncio.create_task(flow.stop_recording())
    await asyncio.sleep(0)

    flow.advance()
    state = flow.state()
    assert state.transcribing
    assert state.target_question_id == 1
    assert state.current_question.id == 2

    release.set()
    await stop_task
    assert flow.answers.as_dict() == {1: "First question answer"}


async def test_clear_answer_then_rerecord(flow, mock_stt):
    flow.begin()
    await _answer_current(flow, mock_stt, "First take")

    assert flow.clear_answer(1)
    await _answer_current(flow, mock_stt, "Second take")

    assert flow.answers.get(1) == "Second take"


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def test_submit_before_last_question(flow):
    flow.begin()
    with pytest.raises(InvalidStateError, match="before the last question"):
        await flow.submit()


async def test_submit_completes_session(flow, mock_stt, mock_repository):
    flow.begin()
    await _answer_current(flow, mock_stt, "Answer one")
    flow.advance()
    flow.advance()
    await _answer_current(flow, mock_stt, "Answer three")

    result = await flow.submit()

    assert result.persisted == [1, 3]
    assert flow.phase is SessionPhase.completed
    assert flow.current_question is None
    assert flow.answers.frozen
    mock_repository.update_applicant_status.assert_awaited_once_with(
        10, ApplicantStatus.completed
    )


async def test_submit_blocked_while_recording(flow, mock_repository):
    flow.begin()
    flow.advance()
    flow.advance()
    await flow.start_recording()

    with pytest.raises(InvalidStateError, match="recording is recording"):
        await flow.submit()
    mock_repository.create_answer_record.assert_not_awaited()


async def test_failed_submit_can_be_retried(flow, mock_stt, mock_repository):
    flow.begin()
    await _answer_current(flow, mock_stt, "Answer one")
    flow.advance()
    flow.advance()
    mock_repository.create_answer_record.side_effect = TransportError("HTTP 500")

    with pytest.raises(PartialSubmissionError):
        await flow.submit()
    assert flow.phase is SessionPhase.active
    assert not flow.answers.frozen
    assert not flow.state().submitting

    mock_repository.create_answer_record.side_effect = None
    await flow.submit()
    assert flow.phase is SessionPhase.completed


async def test_completed_session_rejects_operations(flow):
    flow.begin()
    flow.advance()
    flow.advance()
    await flow.submit()

    with pytest.raises(InvalidStateError, match="the session is completed"):
        await flow.start_recording()
    with pytest.raises(InvalidStateError):
        flow.clear_answer(1)
    with pytest.raises(InvalidStateError):
        await flow.submit()


async def test_close_releases_live_recording(flow, fake_capture):
    flow.begin()
    await flow.start_recording()

    await flow.close()

    assert len(fake_capture.released) == 1
    assert flow.recorder.phase is RecordingPhase.idle


# ---------------------------------------------------------------------------
# Interleaving with an in-flight submission
# ---------------------------------------------------------------------------


def _hold_status_update(repository):
    """Make the status update wait; returns (entered, release) events."""
    entered = asyncio.Event()
    release = asyncio.Event()

    async def held(*args):
        entered.set()
        await release.wait()

    repository.update_applicant_status.side_effect = held
    return entered, release


async def test_edits_rejected_while_submitting(flow, mock_stt, mock_repository, fake_capture):
    flow.begin()
    flow.advance()
    flow.advance()
    await _answer_current(flow, mock_stt, "Answer three")
    entered, release = _hold_status_update(mock_repository)

    submit_task = asyncio.create_task(flow.submit())
    await entered.wait()

    assert flow.state().submitting
    with pytest.raises(SubmissionInProgressError):
        await flow.start_recording()
    with pytest.raises(SubmissionInProgressError):
        flow.clear_answer(3)
    with pytest.raises(SubmissionInProgressError):
        flow.advance()
    with pytest.raises(SubmissionInProgressError):
        await flow.submit()

    release.set()
    await submit_task

    assert flow.phase is SessionPhase.completed
    assert not flow.state().submitting
    assert flow.recorder.phase is RecordingPhase.idle
    assert len(fake_capture.acquired) == 1
    assert fake_capture.released == fake_capture.acquired
    assert flow.answers.as_dict() == {3: "Answer three"}
    mock_repository.update_applicant_status.assert_awaited_once()


async def test_concurrent_submits_write_once(flow, mock_stt, mock_repository):
    flow.begin()
    await _answer_current(flow, mock_stt, "Answer one")
    flow.advance()
    flow.advance()
    await _answer_current(flow, mock_stt, "Answer three")

    async def slow_create(*args):
        await asyncio.sleep(0)

    mock_repository.create_answer_record.side_effect = slow_create

    results = await asyncio.gather(flow.submit(), flow.submit(), return_exceptions=True)

    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], SubmissionInProgressError)
    assert mock_repository.create_answer_record.await_count == 2
    mock_repository.update_applicant_status.assert_awaited_once_with(
        10, ApplicantStatus.completed
    )
    assert flow.phase is SessionPhase.completed


async def test_submit_rejected_while_device_is_opening(
    applicant, interview, questions, make_capture, mock_stt, mock_repository
):
    capture = make_capture()
    opened = asyncio.Event()
    acquire = capture.acquire

    async def slow_acquire():
        await opened.wait()
        return await acquire()

    capture.acquire = slow_acquire
    flow = SessionFlow(applicant, interview, questions, capture, mock_stt, mock_repository, 2)
    flow.begin()
    flow.advance()
    flow.advance()

    start_task = asyncio.create_task(flow.start_recording())
    await asyncio.sleep(0)

    with pytest.raises(InvalidStateError, match="recording is starting"):
        await flow.submit()
    mock_repository.create_answer_record.assert_not_awaited()
    mock_repository.update_applicant_status.assert_not_awaited()

    opened.set()
    await start_task
    assert flow.recorder.phase is RecordingPhase.recording
    assert flow.phase is SessionPhase.active
    await flow.close()
    assert capture.released == capture.acquired
