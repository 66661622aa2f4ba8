"""Pipeline orchestrator module.

Provides state machine coordination for the studio pipeline with:
- The PipelineState model and stage transition table
- The StudioPipeline orchestrator that owns one state and its operations
"""

from ytstudio.orchestrator.pipeline import StudioPipeline
from ytstudio.orchestrator.state import BusyFlags, PipelineState

__all__ = ["BusyFlags", "PipelineState", "StudioPipeline"]
