"""
Parameterized reads against one collection, exposed as reactive-style state.

`QuerySpec` is the typed description of a read (filters, order, limit,
range). `DataQuery` runs a spec, keeps the last good rows, and re-runs when
its inputs change by value or when `refetch()` is called.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

from database import serialize_doc, to_object_id

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = (
    "Network connection failed. Please check your internet connection "
    "and database configuration."
)

# Column names the query syntax treats as keywords.
RESERVED_COLUMNS = frozenset({"order"})


class FilterOp(str, Enum):
    EQ = "eq"
    NEQ = "neq"


class Filter(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    value: Any
    op: FilterOp = FilterOp.EQ

    def expression(self) -> str:
        value = str(self.value).lower() if isinstance(self.value, bool) else self.value
        return f"{self.op.value}.{value}"


class OrderBy(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    ascending: bool = True

    @property
    def quoted_column(self) -> str:
        if self.column in RESERVED_COLUMNS:
            return f'"{self.column}"'
        return self.column

    def expression(self) -> str:
        return f"{self.quoted_column}.{'asc' if self.ascending else 'desc'}"


class RowRange(BaseModel):
    """Zero-based, inclusive row window."""
    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "RowRange":
        if self.end < self.start:
            raise ValueError(f"Invalid row range [{self.start}, {self.end}]")
        return self

    @property
    def size(self) -> int:
        return self.end - self.start + 1


def _field(column: str) -> str:
    return "_id" if column == "id" else column


def _value(column: str, value: Any) -> Any:
    return to_object_id(value) if column == "id" else value


class QuerySpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    table: str
    columns: Optional[Tuple[str, ...]] = None
    filters: Tuple[Filter, ...] = ()
    order: Optional[OrderBy] = None
    limit: Optional[int] = None
    range: Optional[RowRange] = None
    count: bool = False

    @classmethod
    def build(cls, table: str, select: str = "*", filters: Optional[Mapping[str, Any]] = None,
              order_by: Optional[OrderBy] = None, limit: Optional[int] = None,
              range: Optional[RowRange] = None, count: bool = False) -> "QuerySpec":
        applied = tuple(
            Filter(column=column, value=value)
            for column, value in sorted((filters or {}).items())
            if value is not None
        )
        return cls(
            table=table,
            columns=parse_select(select),
            filters=applied,
            order=order_by,
            limit=limit,
            range=range,
            count=count or range is not None,
        )

    def mongo_filter(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        for f in self.filters:
            field = _field(f.column)
            value = _value(f.column, f.value)
            if f.op is FilterOp.EQ:
                query[field] = value
            else:
                query[field] = {"$ne": value}
        return query

    def projection(self) -> Optional[Dict[str, int]]:
        if self.columns is None:
            return None
        return {_field(c): 1 for c in self.columns}

    def window(self) -> Tuple[int, Optional[int]]:
        """(skip, limit) for the cursor; range and limit combine to the smaller window."""
        skip = 0
        limit = self.limit
        if self.range is not None:
            skip = self.range.start
            limit = self.range.size if limit is None else min(limit, self.range.size)
        return skip, limit

    def params(self) -> Dict[str, Any]:
        """Render the read as request-style parameters, mostly for logs."""
        out: Dict[str, Any] = {"select": "*" if self.columns is None else ",".join(self.columns)}
        for f in self.filters:
            out[f.column] = f.expression()
        if self.order is not None:
            out["order"] = self.order.expression()
        skip, limit = self.window()
        if limit is not None:
            out["limit"] = limit
        if skip:
            out["offset"] = skip
        return out


def parse_select(select: str) -> Optional[Tuple[str, ...]]:
    parts = [p.strip() for p in (select or "*").split(",") if p.strip()]
    if not parts or "*" in parts:
        return None
    return tuple(parts)


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, ConnectionFailure):
        return NETWORK_ERROR_MESSAGE
    if isinstance(exc, PyMongoError):
        return f"Database query failed: {exc}"
    return str(exc) or "Unknown error occurred"


def run_query(db, spec: QuerySpec) -> Tuple[List[dict], Optional[int]]:
    if db is None:
        raise RuntimeError("Database client is not initialized. Please check your configuration.")

    collection = db[spec.table]
    mongo_filter = spec.mongo_filter()
    cursor = collection.find(mongo_filter, spec.projection())
    if spec.order is not None:
        direction = ASCENDING if spec.order.ascending else DESCENDING
        cursor = cursor.sort(_field(spec.order.column), direction)
    skip, limit = spec.window()
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)

    rows = [serialize_doc(doc) for doc in cursor]
    total = collection.count_documents(mongo_filter) if spec.count else None
    return rows, total


class DataQuery:
    """
    Stateful read of one collection.

    Runs immediately on construction. `update()` re-runs only when the new
    inputs produce a different QuerySpec; `refetch()` always re-runs. A failed read
    keeps the previous `data` and sets `error`.
    """

    def __init__(self, db, table: str, select: str = "*",
                 filters: Optional[Mapping[str, Any]] = None,
                 order_by: Optional[OrderBy] = None, limit: Optional[int] = None,
                 range: Optional[RowRange] = None, count: bool = False,
                 label: Optional[str] = None, spec: Optional[QuerySpec] = None,
                 enabled: bool = True):
        self.db = db
        self.label = label
        self.data: List[dict] = []
        self.is_loading = enabled
        self.error: Optional[str] = None
        self.count: Optional[int] = None
        self.spec: Optional[QuerySpec] = None
        if spec is None:
            spec = QuerySpec.build(table, select=select, filters=filters, order_by=order_by,
                                   limit=limit, range=range, count=count)
        self.spec = spec
        if enabled:
            self.refetch()

    @classmethod
    def from_spec(cls, db, spec: QuerySpec, label: Optional[str] = None,
                  enabled: bool = True) -> "DataQuery":
        """Run a prebuilt spec, e.g. one using filters the mapping form cannot express."""
        return cls(db, spec.table, label=label, spec=spec, enabled=enabled)

    def update(self, table: str, select: str = "*",
               filters: Optional[Mapping[str, Any]] = None,
               order_by: Optional[OrderBy] = None, limit: Optional[int] = None,
               range: Optional[RowRange] = None, count: bool = False) -> bool:
        spec = QuerySpec.build(table, select=select, filters=filters, order_by=order_by,
                               limit=limit, range=range, count=count)
        if spec == self.spec:
            return False
        self.spec = spec
        self.refetch()
        return True

    def refetch(self) -> None:
        spec = self.spec
        self.is_loading = True
        self.error = None
        try:
            logger.info("Fetching data from %s with %s", spec.table, spec.params())
            rows, total = run_query(self.db, spec)
            logger.debug("%s fetched %d rows", spec.table, len(rows))
            self.data = rows
            if spec.count:
                self.count = total or 0
        except Exception as e:
            logger.error("Error fetching %s: %s", spec.table, e)
            self.fail(e)
        finally:
            self.is_loading = False

    def fail(self, exc: BaseException) -> None:
        """Record a failed read; previously loaded rows are kept."""
        name = self.label or self.spec.table
        self.error = f"Failed to load {name}: {describe_error(exc)}"
        self.is_loading = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "isLoading": self.is_loading,
            "error": self.error,
            "count": self.count,
        }
