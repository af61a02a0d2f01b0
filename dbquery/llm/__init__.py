"""
LLM Module

OpenAI-compatible provider and the SQL generator built on it.

Usage:
    from dbquery.llm import OpenAIProvider, SQLGenerator

    provider = OpenAIProvider(api_key="sk-...", model="gpt-4o-mini")
    sql = await SQLGenerator(provider, "sqlite", limit=10).generate(question, context)
"""

from dbquery.llm.base import BaseLLMProvider
from dbquery.llm.models import LLMMessage, LLMRequest, LLMResponse, LLMUsage
from dbquery.llm.openai import OpenAIProvider
from dbquery.llm.sql import SQLGenerator, normalize_sql

__all__ = [
    "BaseLLMProvider",
    "LLMMessage",
    "LLMRequest",
    "LLMResponse",
    "LLMUsage",
    "OpenAIProvider",
    "SQLGenerator",
    "normalize_sql",
]
