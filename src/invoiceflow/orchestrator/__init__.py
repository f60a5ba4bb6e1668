"""Pipeline orchestration."""
from .pipeline import PipelineOrchestrator, Step
from .sink import LocalArtifactSink

__all__ = ["PipelineOrchestrator", "Step", "LocalArtifactSink"]
