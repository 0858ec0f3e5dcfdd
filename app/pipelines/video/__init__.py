"""Video processing pipeline: upload → content extraction → summary + quiz."""

from .flow import PipelineStage, VideoProcessingPipeline, stage_boundary
from .ingestion import discard_upload, resolve_video_content_type, store_upload
from .orchestrator import StageFailedError, VideoPipelineOrchestrator, default_capabilities
from .runner import DuplicateJobError, JobRunner, PipelineBusyError
from .types import (
    Capabilities,
    PipelineContent,
    StageResult,
    StageStatus,
    SynthesisOutput,
    VisualOutput,
)

__all__ = [
    "Capabilities",
    "DuplicateJobError",
    "JobRunner",
    "PipelineBusyError",
    "PipelineContent",
    "PipelineStage",
    "StageFailedError",
    "StageResult",
    "StageStatus",
    "SynthesisOutput",
    "VideoPipelineOrchestrator",
    "VideoProcessingPipeline",
    "VisualOutput",
    "default_capabilities",
    "discard_upload",
    "resolve_video_content_type",
    "stage_boundary",
    "store_upload",
]
