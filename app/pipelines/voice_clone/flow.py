"""High-level map of the voice clone pipeline.

``VoiceClonePipeline`` in ``orchestrator`` runs these stages strictly in
order; each stage needs the previous one's output:

1. ``validation`` – non-empty audio, numeric brand id, brand row lookup.
2. ``processing`` – best-effort silence trimming of WAV uploads.
3. ``transforming`` – ElevenLabs speech-to-speech conversion.
4. ``uploading`` – overwrite the brand's object in S3.
5. ``updating_db`` – store the public URL on the brand row (non-fatal).

The recording console reads this list from ``GET /voice-clone/stages`` to
label the progress events it receives.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from app.services.progress_channel import ProcessStep


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the voice clone pipeline."""

    order: int
    step: ProcessStep
    label: str
    summary: str
    fatal: bool = True


class VoiceCloneFlow:
    """Ordered stage metadata shared by the orchestrator, metrics and clients."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            ProcessStep.PROCESSING,
            "Processing recording",
            "Validate the upload, resolve the brand and trim leading/trailing silence.",
        ),
        PipelineStage(
            2,
            ProcessStep.TRANSFORMING,
            "Converting voice",
            "Send the recording to the ElevenLabs speech-to-speech endpoint.",
        ),
        PipelineStage(
            3,
            ProcessStep.UPLOADING,
            "Uploading audio",
            "Overwrite the brand's recording object in S3 and build its public URL.",
        ),
        PipelineStage(
            4,
            ProcessStep.UPDATING_DB,
            "Saving brand record",
            "Persist the public URL on the brand row; failures do not undo the upload.",
            fatal=False,
        ),
        PipelineStage(
            5,
            ProcessStep.COMPLETED,
            "Completed",
            "Always the final event of a run that uploaded its audio.",
            fatal=False,
        ),
    ]

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES)

    @classmethod
    def label_for(cls, step: str) -> str:
        for stage in cls._STAGES:
            if stage.step.value == step:
                return stage.label
        return step


__all__ = ["PipelineStage", "VoiceCloneFlow"]
