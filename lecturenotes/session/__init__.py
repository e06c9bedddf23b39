"""Controllers for the recording session and per-note pipeline."""

from .pipeline import LecturePipeline, PipelineState
from .recording import RecordingController, RecordingState

__all__ = ["LecturePipeline", "PipelineState", "RecordingController", "RecordingState"]
