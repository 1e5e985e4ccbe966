"""Contracts for the document store used by triggers and scheduled jobs."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from propalert.utils.paths import document_id


class _ServerTimestamp:
  """Sentinel replaced by the store's server-assigned write time."""

  _instance: _ServerTimestamp | None = None

  def __new__(cls) -> _ServerTimestamp:
    if cls._instance is None:
      cls._instance = super().__new__(cls)
    return cls._instance

  def __repr__(self) -> str:
    return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class StoredDocument:
  """A document snapshot addressed by its full path."""

  path: str
  data: dict[str, Any]

  @property
  def id(self) -> str:
    return document_id(self.path)


@dataclass(frozen=True)
class QueryFilter:
  """A single field predicate. Supported operators: ``==``, ``in``, ``<=``."""

  field: str
  op: str
  value: Any


class StoreError(Exception):
  """Base class for document store failures."""


class DocumentNotFoundError(StoreError):
  """Raised when an update targets a document that does not exist."""


class WriteBatch(Protocol):
  """Atomic multi-document write scoped to one logical partition."""

  def set(self, path: str, data: dict[str, Any]) -> None:
    """Queue a full document write."""

  def update(self, path: str, data: dict[str, Any]) -> None:
    """Queue a partial update of an existing document."""

  async def commit(self) -> None:
    """Apply every queued write atomically."""


class DocumentStore(Protocol):
  """Point reads, point writes, batches and associative array updates."""

  async def get(self, path: str) -> StoredDocument | None:
    """Read a document, returning None when it does not exist."""

  async def list_documents(self, collection_path: str) -> list[StoredDocument]:
    """Read every document in a collection."""

  async def query(self, collection_path: str, filters: Sequence[QueryFilter], *, limit: int | None = None) -> list[StoredDocument]:
    """Read the documents of a collection matching every filter."""

  async def add(self, collection_path: str, data: dict[str, Any]) -> str:
    """Create a document with a generated id and return its path."""

  async def update(self, path: str, data: dict[str, Any]) -> None:
    """Update fields of an existing document."""

  async def array_union(self, path: str, field: str, values: Sequence[Any]) -> None:
    """Add values to an array field without duplicating existing entries."""

  async def array_remove(self, path: str, field: str, values: Sequence[Any]) -> None:
    """Remove every occurrence of the values from an array field."""

  async def compare_and_set(self, path: str, field: str, *, expected: Collection[Any], value: Any) -> bool:
    """Transactionally set ``field`` to ``value`` when its current value is in ``expected``."""

  def new_document_path(self, collection_path: str) -> str:
    """Reserve a path with a generated id inside a collection."""

  def batch(self) -> WriteBatch:
    """Start a new atomic batch."""
