"""Progress event stream (Server-Sent Events) and internal publish endpoint."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse, StreamingResponse

from app.controllers.dependencies import ProgressChannelDep
from app.views import ErrorResponse, ProcessEventPublish, ProcessEventPublishResponse

router = APIRouter(prefix="/process-events", tags=["process-events"])

logger = logging.getLogger(__name__)

_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("")
async def subscribe_process_events(channel: ProgressChannelDep) -> StreamingResponse:
    """Open a long-lived event stream; the first frame carries the client id."""

    connection = channel.subscribe()
    return StreamingResponse(
        channel.stream(connection),
        media_type="text/event-stream",
        headers=_STREAM_HEADERS,
    )


@router.post("", response_model=ProcessEventPublishResponse)
async def publish_process_event(
    payload: ProcessEventPublish,
    channel: ProgressChannelDep,
):
    """Push a step event to one client (``clientId``) or to every open stream."""

    if not payload.step:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(error="Missing required field: step").model_dump(),
        )

    delivered = channel.publish(payload.client_id, payload.step, payload.error)
    logger.debug("Published %s to %d client(s)", payload.step, delivered)
    return ProcessEventPublishResponse(success=True, delivered=delivered)
