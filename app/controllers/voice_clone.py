"""Voice clone endpoint.

``POST /voice-clone`` runs `app.pipelines.voice_clone.VoiceClonePipeline`:

1. Read the multipart upload (``audio``, ``brandId``, optional ``clientId``).
2. Trim silence, convert the voice with ElevenLabs, upload to S3.
3. Store the public URL on the brand row; a failure here still returns the URL
   with ``dbUpdateSuccess: false``.

Progress is published to ``clientId`` when given, otherwise to every open
``GET /process-events`` stream.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, File, Form, UploadFile, status
from fastapi.responses import JSONResponse

from app.controllers.dependencies import ProgressChannelDep, VoiceClonePipelineDep
from app.pipelines.voice_clone import (
    VoiceCloneFlow,
    read_audio_bytes,
    resolve_content_type,
)
from app.services.errors import BrandNotFound, InvalidPipelineInput
from app.services.progress_channel import ProcessStep
from app.views import PipelineStageRead, PipelineStagesResponse, VoiceCloneResponse

router = APIRouter(prefix="/voice-clone", tags=["voice-clone"])

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=VoiceCloneResponse(success=False, error=message).model_dump(
            by_alias=True, exclude_none=True
        ),
    )


@router.post("", response_model=VoiceCloneResponse, response_model_exclude_none=True)
async def clone_voice(
    pipeline: VoiceClonePipelineDep,
    channel: ProgressChannelDep,
    audio: Annotated[Optional[UploadFile], File()] = None,
    brand_id: Annotated[Optional[str], Form(alias="brandId")] = None,
    client_id: Annotated[Optional[str], Form(alias="clientId")] = None,
):
    """Convert an uploaded recording and attach the result to the brand."""

    if audio is None or not brand_id:
        message = "Missing audio file or brandId"
        if client_id:
            channel.publish(client_id, ProcessStep.ERROR.value, message)
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    try:
        content_type = resolve_content_type(audio)
        audio_bytes = await read_audio_bytes(audio)
        logger.info(
            "Received recording name=%s type=%s size=%d brand=%s",
            audio.filename,
            content_type,
            len(audio_bytes),
            brand_id,
        )
        result = await pipeline.run(
            audio_bytes,
            brand_id=brand_id,
            client_id=client_id or None,
            filename=audio.filename or "recording.wav",
            content_type=content_type,
        )
    except InvalidPipelineInput as exc:
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))
    except BrandNotFound as exc:
        return _error_response(status.HTTP_404_NOT_FOUND, str(exc))
    except Exception as exc:
        logger.exception("Error in voice clone process")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Failed to process voice cloning: {exc}",
        )

    return VoiceCloneResponse(
        success=True,
        url=result.url,
        db_update_success=result.db_update_success,
    )


@router.get("/stages", response_model=PipelineStagesResponse)
async def list_stages() -> PipelineStagesResponse:
    """Describe the ordered pipeline stages for progress displays."""

    return PipelineStagesResponse(
        stages=[
            PipelineStageRead(
                order=stage.order,
                step=stage.step.value,
                label=stage.label,
                summary=stage.summary,
                fatal=stage.fatal,
            )
            for stage in VoiceCloneFlow.describe()
        ]
    )
