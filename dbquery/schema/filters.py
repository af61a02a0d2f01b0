"""Table-scope filter applied before any column lookup."""

from collections.abc import Iterable


class TableFilter:
    """
    Allow-list of table names, matched case-insensitively.

    An empty filter matches every table. Qualified names also match on their
    last dotted segment, so a scope of ``users`` selects ``public.users``.
    """

    def __init__(self, scope: Iterable[str] | None = None):
        tokens = (token.strip().lower() for token in (scope or ()))
        self.tokens: frozenset[str] = frozenset(token for token in tokens if token)

    def __bool__(self) -> bool:
        return bool(self.tokens)

    def __repr__(self) -> str:
        return f"<TableFilter {sorted(self.tokens)}>"

    def matches(self, name: str) -> bool:
        if not self.tokens:
            return True

        candidate = name.strip().lower()
        if candidate in self.tokens:
            return True

        parts = candidate.split(".")
        return len(parts) > 1 and parts[-1] in self.tokens
