"""Voice clone pipeline package.

Modules follow the order in which ``POST /voice-clone`` executes:

1. `ingestion` – read the multipart upload and validate the brand id.
2. `trimming` – best-effort silence removal for WAV captures.
3. `orchestrator` – transform, upload and persist while publishing progress.
4. `flow` – human-readable description of the stages.
"""

from .flow import PipelineStage, VoiceCloneFlow
from .ingestion import (
    ensure_supported_content_type,
    parse_brand_id,
    read_audio_bytes,
    resolve_content_type,
)
from .orchestrator import DB_FAILURE_MESSAGE, VoiceClonePipeline
from .trimming import find_voiced_span, is_wav, trim_silence
from .types import PipelineResult

__all__ = [
    "DB_FAILURE_MESSAGE",
    "PipelineResult",
    "PipelineStage",
    "VoiceCloneFlow",
    "VoiceClonePipeline",
    "ensure_supported_content_type",
    "find_voiced_span",
    "is_wav",
    "parse_brand_id",
    "read_audio_bytes",
    "resolve_content_type",
    "trim_silence",
]
