"""WebSocket endpoint for client-side audio capture.

When ``capture_provider`` is ``stream`` the browser owns the microphone and
streams raw PCM bytes (16-bit, ``capture_sample_rate``, ``capture_channels``)
over this socket. Bytes are buffered into the session's live recording and
dropped while no recording is active or it is paused; start/pause/stop are
still driven through the REST routes.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from interview_capture.core.exceptions import SessionNotFoundError
from interview_capture.core.models import WebSocketMessage, WebSocketMessageType
from interview_capture.services import orchestrator
from interview_capture.services.audio.capture import StreamCapture

logger = logging.getLogger(__name__)

router = APIRouter()


async def _send(websocket: WebSocket, type_: WebSocketMessageType, **data) -> None:
    msg = WebSocketMessage(type=type_, data=data)
    await websocket.send_json(msg.model_dump(mode="json"))


@router.websocket("/ws/sessions/{applicant_id}/audio")
async def audio_ws(websocket: WebSocket, applicant_id: int) -> None:
    """Receive PCM audio for an applicant's session.

    Protocol:
        - Server sends ``connected`` once accepted, or ``error`` and closes
          when there is no session or it does not take streamed audio.
        - Client sends binary PCM frames; a text frame gets an ``error`` reply
          and the socket stays open.
        - Server replies ``status`` with ``buffered=false`` the first time
          bytes arrive while nothing is recording.
    """
    await websocket.accept()

    try:
        flow = orchestrator.get_session(applicant_id)
    except SessionNotFoundError as exc:
        await _send(websocket, WebSocketMessageType.error, detail=exc.detail)
        await websocket.close(code=1008)
        return

    capture = flow.recorder.capture
    if not isinstance(capture, StreamCapture):
        await _send(
            websocket,
            WebSocketMessageType.error,
            detail="This session records from a local microphone",
        )
        await websocket.close(code=1008)
        return

    logger.info("Audio WebSocket connected for applicant %s", applicant_id)
    await _send(websocket, WebSocketMessageType.connected, applicant_id=applicant_id)

    warned = False
    total_bytes = 0
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            data = message.get("bytes")
            if data is None:
                await _send(
                    websocket,
                    WebSocketMessageType.error,
                    detail="Expected binary PCM frames",
                )
                continue
            if capture.push(data):
                total_bytes += len(data)
                warned = False
            elif not warned:
                await _send(websocket, WebSocketMessageType.status, buffered=False)
                warned = True
    except WebSocketDisconnect:
        logger.info(
            "Audio WebSocket disconnected for applicant %s (%d bytes buffered)",
            applicant_id,
            total_bytes,
        )
