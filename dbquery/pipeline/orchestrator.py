"""
Query Pipeline Orchestrator

Runs one natural-language request through the fixed sequence:

    schema context → SQL generation → read-only guard → limit injection
        → execution → rendering → (output file)

Every step is awaited in order on one connector; nothing runs concurrently.
A history entry is recorded on every exit path, including failures and dry
runs, and a failed history write never masks the run's own error.
"""

import logging
import time
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, Field

from dbquery.config import QueryConfig
from dbquery.connectors.base import BaseConnector
from dbquery.connectors.factory import create_connector
from dbquery.errors import ConfigurationError
from dbquery.executor import execute
from dbquery.history import HistoryEntry, record_history_best_effort
from dbquery.llm.openai import OpenAIProvider
from dbquery.llm.sql import SQLGenerator
from dbquery.models import ResultSet
from dbquery.render import render
from dbquery.safety import KeywordReadOnlyGuard, ReadOnlyGuard, ensure_limit
from dbquery.schema.context import build_schema_context
from dbquery.schema.introspector import introspect

logger = logging.getLogger(__name__)


class PipelineResult(BaseModel):
    """Outcome of one successful request."""

    question: str
    sql: str
    dry_run: bool = False
    result: ResultSet | None = Field(default=None, description="None for dry runs")
    rendered: str | None = Field(default=None, description="Rendered output, None for dry runs")
    history: HistoryEntry


class QueryPipeline:
    """
    Query pipeline bound to one open connector.

    Usage:
        async with QueryPipeline.from_config(config) as pipeline:
            result = await pipeline.run("how many users signed up today?")
            print(result.rendered)
    """

    def __init__(
        self,
        config: QueryConfig,
        connector: BaseConnector,
        generator: SQLGenerator,
        guard: ReadOnlyGuard | None = None,
    ):
        self.config = config
        self.connector = connector
        self.generator = generator
        self.guard = guard or KeywordReadOnlyGuard()
        self.schema_context: str | None = None

    @classmethod
    def from_config(cls, config: QueryConfig) -> "QueryPipeline":
        """Wire an unconnected connector and an OpenAI-compatible generator."""
        connector = create_connector(config.dialect, config.db_url, timeout=config.timeout)
        provider = OpenAIProvider(
            api_key=config.api_key,
            model=config.model,
            base_url=config.llm_base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
        )
        generator = SQLGenerator(
            provider,
            dialect=config.dialect,
            limit=config.limit,
            allow_write=config.allow_write,
        )
        return cls(config, connector, generator)

    async def __aenter__(self) -> "QueryPipeline":
        await self.connector.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.connector.close()
        return False

    async def prepare_schema(self) -> str:
        """Introspect once and cache the prompt context for later requests."""
        if self.schema_context is None:
            tables = await introspect(
                self.connector,
                self.config.dialect,
                self.config.tables,
                self.config.schema_max_tables,
                timeout=self.config.timeout,
            )
            self.schema_context = build_schema_context(tables, self.config.schema_file)
            logger.info(f"Schema context built from {len(tables)} tables")
        return self.schema_context

    async def run(
        self,
        question: str,
        on_sql: Callable[[str], None] | None = None,
    ) -> PipelineResult:
        """
        Answer one natural-language request.

        Args:
            question: Natural-language request
            on_sql: Called with the final SQL when show_sql, verbose or
                dry_run is set

        Returns:
            PipelineResult with the SQL, result set and rendered text

        Raises:
            SQLGenerationError: If the model fails or returns nothing
            NotReadOnlyError: If the SQL is rejected by the guard
            ExecutionError: If the database rejects the SQL
            QueryTimeoutError: If a database call exceeds the timeout
            RenderError: If the result cannot be rendered
            ConfigurationError: If the output file cannot be written
        """
        config = self.config
        entry = HistoryEntry(
            mode=config.mode,
            db_type=config.dialect,
            profile=config.profile,
            natural_query=question,
        )
        start_time = time.perf_counter()

        try:
            schema_context = await self.prepare_schema()
            sql = await self.generator.generate(question, schema_context)

            if not config.allow_write:
                entry.sql = sql
                self.guard.check(sql)

            if not config.no_auto_limit:
                sql = ensure_limit(sql, config.limit)
            entry.sql = sql

            if on_sql and (config.show_sql or config.verbose or config.dry_run):
                on_sql(sql)

            if config.dry_run:
                return PipelineResult(question=question, sql=sql, dry_run=True, history=entry)

            result = await execute(self.connector, sql, timeout=config.timeout)
            rendered = render(config.output, result.columns, result.rows)

            if config.output_file:
                try:
                    Path(config.output_file).write_text(rendered, encoding="utf-8")
                except OSError as e:
                    raise ConfigurationError(f"write output file: {e}") from e

            entry.rows = result.row_count
            return PipelineResult(
                question=question,
                sql=sql,
                result=result,
                rendered=rendered,
                history=entry,
            )
        except Exception as e:
            entry.error = str(e)
            raise
        finally:
            entry.duration_ms = int((time.perf_counter() - start_time) * 1000)
            record_history_best_effort(
                config.history_file,
                entry,
                enabled=not config.no_history,
            )
