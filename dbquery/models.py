"""
Pipeline Data Models

Pydantic models passed between introspection, execution and rendering.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TableDescriptor(BaseModel):
    """One discovered table and its column shapes."""

    name: str = Field(..., description="Table name, schema-qualified for postgres")
    columns: tuple[str, ...] = Field(
        default=(),
        description='Ordered "<name> <declared-type>" strings',
    )

    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        """Single-line form used in the schema prompt."""
        return f"{self.name} ({', '.join(self.columns)})"


class ResultSet(BaseModel):
    """Columns and normalized rows produced by one statement."""

    columns: list[str] = Field(..., description="Column names in driver order")
    rows: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Row mappings in database return order",
    )
    execution_time_ms: float = Field(default=0.0, description="Query execution time in ms")

    @property
    def row_count(self) -> int:
        """Number of rows returned."""
        return len(self.rows)
