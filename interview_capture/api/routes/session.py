"""
Interview session REST endpoints.

Thin wrappers over ``SessionFlow``: every route looks up the applicant's
live session in the orchestrator and returns its state snapshot. Domain
errors propagate to the error middleware.
"""

import logging

from fastapi import APIRouter

from interview_capture.core.models import (
    ErrorResponse,
    SessionState,
    StopRecordingResponse,
    SubmitResponse,
)
from interview_capture.services import orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/sessions",
    tags=["sessions"],
    responses={
        404: {"model": ErrorResponse, "description": "No such applicant, interview or session"},
        409: {"model": ErrorResponse, "description": "Operation not valid in the current state"},
        502: {"model": ErrorResponse, "description": "Interview API call failed"},
    },
)


@router.post("/{applicant_id}", response_model=SessionState)
async def open_session(applicant_id: int):
    """Load the applicant's interview and show the welcome screen."""
    flow = await orchestrator.open_session(applicant_id)
    return flow.state()


@router.get("/{applicant_id}", response_model=SessionState)
async def get_session(applicant_id: int):
    return orchestrator.get_session(applicant_id).state()


@router.delete("/{applicant_id}", status_code=204)
async def close_session(applicant_id: int):
    """Leave the interview; any live recording is released without transcription."""
    await orchestrator.close_session(applicant_id)


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


@router.post("/{applicant_id}/begin", response_model=SessionState)
async def begin(applicant_id: int):
    flow = orchestrator.get_session(applicant_id)
    flow.begin()
    return flow.state()


@router.post("/{applicant_id}/next", response_model=SessionState)
async def next_question(applicant_id: int):
    flow = orchestrator.get_session(applicant_id)
    flow.advance()
    return flow.state()


@router.post("/{applicant_id}/submit", response_model=SubmitResponse)
async def submit(applicant_id: int):
    """Persist every answer and mark the applicant completed."""
    flow = orchestrator.get_session(applicant_id)
    result = await flow.submit()
    return SubmitResponse(result=result, session=flow.state())


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


@router.post(
    "/{applicant_id}/recording/start",
    response_model=SessionState,
    responses={
        403: {"model": ErrorResponse, "description": "Microphone access denied"},
        503: {"model": ErrorResponse, "description": "No input device available"},
    },
)
async def start_recording(applicant_id: int):
    flow = orchestrator.get_session(applicant_id)
    await flow.start_recording()
    return flow.state()


@router.post("/{applicant_id}/recording/pause", response_model=SessionState)
async def pause_recording(applicant_id: int):
    flow = orchestrator.get_session(applicant_id)
    await flow.pause_recording()
    return flow.state()


@router.post("/{applicant_id}/recording/resume", response_model=SessionState)
async def resume_recording(applicant_id: int):
    flow = orchestrator.get_session(applicant_id)
    await flow.resume_recording()
    return flow.state()


@router.post(
    "/{applicant_id}/recording/stop",
    response_model=StopRecordingResponse,
    responses={500: {"model": ErrorResponse, "description": "Speech recognition failed"}},
)
async def stop_recording(applicant_id: int):
    """Stop recording and wait for the transcript."""
    flow = orchestrator.get_session(applicant_id)
    outcome = await flow.stop_recording()
    return StopRecordingResponse(outcome=outcome, session=flow.state())


@router.delete("/{applicant_id}/answers/{question_id}", response_model=SessionState)
async def clear_answer(applicant_id: int, question_id: int):
    """Remove a stored answer so the question can be recorded again."""
    flow = orchestrator.get_session(applicant_id)
    flow.clear_answer(question_id)
    return flow.state()
