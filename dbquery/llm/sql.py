"""
SQL Generation

Builds the prompt for the language model and cleans the returned text down to
a bare SQL statement.

Usage:
    generator = SQLGenerator(provider, dialect="postgres", limit=10)
    sql = await generator.generate("users created this week", schema_context)
"""

import logging
import re

import openai

from dbquery.errors import SQLGenerationError
from dbquery.llm.base import BaseLLMProvider
from dbquery.llm.models import LLMMessage, LLMRequest

logger = logging.getLogger(__name__)

_CODE_FENCE_PATTERN = re.compile(r"^```(?:\w+)?\s*(.*?)\s*```$", re.DOTALL)

READ_ONLY_MODE_LINE = "Generate one read-only SQL query."
WRITE_MODE_LINE = "Generate one SQL query matching the request."


def build_system_prompt(dialect: str, limit: int, allow_write: bool = False) -> str:
    return "\n".join(
        [
            "You are a senior SQL engineer.",
            "Translate user requests into valid SQL for the specified dialect.",
            WRITE_MODE_LINE if allow_write else READ_ONLY_MODE_LINE,
            "Use only schema shown in the context.",
            "Return only raw SQL. No markdown, no explanation, no backticks.",
            f"Target dialect: {dialect}.",
            f"Target row limit: {limit} unless user asks for another limit.",
        ]
    )


def build_user_prompt(question: str, schema_context: str) -> str:
    return f"User request:\n{question}\n\nSchema context:\n{schema_context}\n"


def normalize_sql(text: str) -> str:
    """Strip a surrounding code fence and a leading "sql:" label."""
    sql = text.strip()
    match = _CODE_FENCE_PATTERN.match(sql)
    if match:
        sql = match.group(1).strip()
    if sql.lower().startswith("sql:"):
        sql = sql[4:].strip()
    return sql.strip()


class SQLGenerator:
    """Turns a natural-language request into one SQL statement."""

    def __init__(
        self,
        provider: BaseLLMProvider,
        dialect: str,
        limit: int,
        allow_write: bool = False,
    ):
        self.provider = provider
        self.dialect = dialect
        self.limit = limit
        self.allow_write = allow_write

    async def generate(self, question: str, schema_context: str) -> str:
        """
        Ask the model for SQL and normalize the answer.

        Raises:
            SQLGenerationError: If the provider fails or returns no SQL
        """
        request = LLMRequest(
            messages=[
                LLMMessage(
                    role="system",
                    content=build_system_prompt(self.dialect, self.limit, self.allow_write),
                ),
                LLMMessage(role="user", content=build_user_prompt(question, schema_context)),
            ],
        )

        try:
            response = await self.provider.generate(request)
        except (openai.OpenAIError, ValueError) as e:
            raise SQLGenerationError(f"generate SQL with LLM: {e}") from e

        sql = normalize_sql(response.content)
        if not sql:
            raise SQLGenerationError("LLM returned an empty SQL query")

        logger.debug(f"Generated SQL: {sql}")
        return sql
