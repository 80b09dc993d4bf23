"""
Table query builder shared by every backend implementation.

A TableQuery only records what to fetch; the row store bound to it decides how
the request is executed (a REST call for the hosted backend, a SQL statement
for the local one).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union, TYPE_CHECKING

from housing.backend.errors import BackendError

if TYPE_CHECKING:
    from housing.backend.base import RowStore


FILTER_OPERATORS = ("eq", "gte", "lte", "in")


@dataclass(frozen=True)
class Filter:
    """Single column filter."""
    column: str
    operator: str
    value: Any


@dataclass(frozen=True)
class Ordering:
    column: str
    descending: bool = False


class TableQuery:
    """Chainable query against one table of the backend."""

    def __init__(self, table: str, store: "RowStore"):
        self.table = table
        self.store = store
        self.columns = "*"
        self.filters: List[Filter] = []
        self.orderings: List[Ordering] = []
        self.row_limit: Optional[int] = None

    def select(self, columns: str = "*") -> "TableQuery":
        self.columns = columns.replace(" ", "") or "*"
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        return self._add_filter(column, "eq", value)

    def gte(self, column: str, value: Any) -> "TableQuery":
        return self._add_filter(column, "gte", value)

    def lte(self, column: str, value: Any) -> "TableQuery":
        return self._add_filter(column, "lte", value)

    def in_(self, column: str, values: Sequence[Any]) -> "TableQuery":
        return self._add_filter(column, "in", list(values))

    def order(self, column: str, descending: bool = False) -> "TableQuery":
        self.orderings.append(Ordering(column, descending))
        return self

    def limit(self, count: int) -> "TableQuery":
        if count < 0:
            raise ValueError("limit must not be negative")
        self.row_limit = count
        return self

    @property
    def selected_columns(self) -> Optional[List[str]]:
        """Column names requested, or None for all columns."""
        if self.columns == "*":
            return None
        return [column for column in self.columns.split(",") if column]

    async def execute(self) -> List[Dict[str, Any]]:
        """Run the select and return the matching rows."""
        return await self.store.select(self)

    async def first(self) -> Optional[Dict[str, Any]]:
        """Return the first matching row or None."""
        self.limit(1)
        rows = await self.store.select(self)
        return rows[0] if rows else None

    async def insert(
        self, rows: Union[Dict[str, Any], Sequence[Dict[str, Any]]]
    ) -> List[Dict[str, Any]]:
        """Insert one or many rows and return them as stored."""
        if isinstance(rows, dict):
            rows = [rows]
        rows = list(rows)
        if not rows:
            return []
        return await self.store.insert(self.table, rows)

    async def delete(self) -> List[Dict[str, Any]]:
        """Delete matching rows and return them. Refuses to run unfiltered."""
        if not self.filters:
            raise BackendError(
                f"Refusing to delete from {self.table} without filters",
                status_code=400,
                code="UNFILTERED_DELETE"
            )
        return await self.store.delete(self)

    def _add_filter(self, column: str, operator: str, value: Any) -> "TableQuery":
        if operator not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {operator}")
        self.filters.append(Filter(column, operator, value))
        return self

    def __repr__(self) -> str:
        return f"<TableQuery(table={self.table}, filters={self.filters}, order={self.orderings})>"
