"""Query pipeline orchestration."""

from dbquery.pipeline.orchestrator import PipelineResult, QueryPipeline

__all__ = ["PipelineResult", "QueryPipeline"]
