# generic document-store query interface
# firestore-style builder: collection(path).where(...).order_by(...).limit(n)
# stores implement DocumentStore._run, timeouts and error wrapping live here

import asyncio
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from therapist_dashboard.config import settings

FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "in", "array-contains"]
Direction = Literal["asc", "desc"]


class QueryError(Exception):
    """a store call failed: network, permission, timeout or malformed query"""

    def __init__(self, path: str, message: str):
        super().__init__(f"query on '{path}' failed: {message}")
        self.path = path


class FieldFilter(BaseModel):
    field: str
    op: FilterOp
    value: Any

    model_config = {"frozen": True}


class OrderBy(BaseModel):
    field: str
    direction: Direction = "asc"

    model_config = {"frozen": True}


class Query(BaseModel):
    """immutable query description, every builder call returns a new query"""
    path: str
    filters: tuple[FieldFilter, ...] = ()
    ordering: tuple[OrderBy, ...] = ()
    max_results: Optional[int] = Field(None, ge=0)

    model_config = {"frozen": True}

    def where(self, field: str, op: FilterOp, value: Any) -> "Query":
        return self.model_copy(
            update={"filters": self.filters + (FieldFilter(field=field, op=op, value=value),)}
        )

    def order_by(self, field: str, direction: Direction = "asc") -> "Query":
        return self.model_copy(
            update={"ordering": self.ordering + (OrderBy(field=field, direction=direction),)}
        )

    def limit(self, n: int) -> "Query":
        if n < 0:
            raise ValueError("limit must be non-negative")
        return self.model_copy(update={"max_results": n})

    @property
    def segments(self) -> list[str]:
        return [s for s in self.path.split("/") if s]


def collection(*parts: str) -> Query:
    """reference a collection by path, e.g. collection("chats", chat_id, "messages")"""
    path = "/".join(p.strip("/") for p in parts)
    segments = [s for s in path.split("/") if s]
    if not segments or len(segments) % 2 == 0:
        raise ValueError(f"'{path}' is not a collection path")
    return Query(path=path)


class Document(BaseModel):
    """a stored document: its identifier plus its field mapping"""
    id: str
    data: dict[str, Any] = Field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


class DocumentStore:
    """base class for stores: run a query and return an ordered list of documents"""

    # stores that cannot order by more than one field set this to False
    supports_compound_order: bool = True

    async def execute(self, query: Query) -> list[Document]:
        """run a query with the configured timeout, wrapping every failure in QueryError"""
        try:
            return await asyncio.wait_for(self._run(query), timeout=settings.QUERY_TIMEOUT_SECONDS)
        except QueryError:
            raise
        except asyncio.TimeoutError as e:
            raise QueryError(query.path, f"timed out after {settings.QUERY_TIMEOUT_SECONDS}s") from e
        except Exception as e:
            raise QueryError(query.path, str(e)) from e

    async def _run(self, query: Query) -> list[Document]:
        raise NotImplementedError
