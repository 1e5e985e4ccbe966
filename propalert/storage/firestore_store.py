"""Firestore implementation of the document store contract."""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from typing import Any

from google.api_core.exceptions import NotFound
from google.cloud import firestore
from google.cloud.firestore import AsyncClient, async_transactional
from google.cloud.firestore_v1.base_query import FieldFilter

from propalert.storage.contracts import SERVER_TIMESTAMP, DocumentNotFoundError, DocumentStore, QueryFilter, StoredDocument, WriteBatch

logger = logging.getLogger(__name__)


def _encode(data: dict[str, Any]) -> dict[str, Any]:
  """Translate store-neutral sentinels into Firestore transforms."""
  return {key: (firestore.SERVER_TIMESTAMP if value is SERVER_TIMESTAMP else value) for key, value in data.items()}


def _snapshot_to_document(snapshot: Any) -> StoredDocument:
  return StoredDocument(path=snapshot.reference.path, data=snapshot.to_dict() or {})


class FirestoreWriteBatch(WriteBatch):
  """Wrap an async Firestore batch so callers only deal in paths."""

  def __init__(self, client: AsyncClient) -> None:
    self._client = client
    self._batch = client.batch()

  def set(self, path: str, data: dict[str, Any]) -> None:
    self._batch.set(self._client.document(path), _encode(data))

  def update(self, path: str, data: dict[str, Any]) -> None:
    self._batch.update(self._client.document(path), _encode(data))

  async def commit(self) -> None:
    await self._batch.commit()


class FirestoreDocumentStore(DocumentStore):
  """`google-cloud-firestore` backed store."""

  def __init__(self, client: AsyncClient) -> None:
    self._client = client

  async def get(self, path: str) -> StoredDocument | None:
    snapshot = await self._client.document(path).get()
    if not snapshot.exists:
      return None
    return _snapshot_to_document(snapshot)

  async def list_documents(self, collection_path: str) -> list[StoredDocument]:
    return [_snapshot_to_document(snapshot) async for snapshot in self._client.collection(collection_path).stream()]

  async def query(self, collection_path: str, filters: Sequence[QueryFilter], *, limit: int | None = None) -> list[StoredDocument]:
    query: Any = self._client.collection(collection_path)
    for item in filters:
      query = query.where(filter=FieldFilter(item.field, item.op, item.value))
    if limit is not None:
      query = query.limit(limit)
    return [_snapshot_to_document(snapshot) async for snapshot in query.stream()]

  async def add(self, collection_path: str, data: dict[str, Any]) -> str:
    _, ref = await self._client.collection(collection_path).add(_encode(data))
    return ref.path

  async def update(self, path: str, data: dict[str, Any]) -> None:
    try:
      await self._client.document(path).update(_encode(data))
    except NotFound as exc:
      raise DocumentNotFoundError(f"Document not found: {path}") from exc

  async def array_union(self, path: str, field: str, values: Sequence[Any]) -> None:
    await self.update(path, {field: firestore.ArrayUnion(list(values))})

  async def array_remove(self, path: str, field: str, values: Sequence[Any]) -> None:
    await self.update(path, {field: firestore.ArrayRemove(list(values))})

  async def compare_and_set(self, path: str, field: str, *, expected: Collection[Any], value: Any) -> bool:
    ref = self._client.document(path)
    encoded = _encode({field: value})

    @async_transactional
    async def _apply(transaction: Any) -> bool:
      snapshot = await ref.get(transaction=transaction)
      if not snapshot.exists:
        return False
      current = (snapshot.to_dict() or {}).get(field)
      if current not in expected:
        logger.debug("Compare-and-set skipped path=%s field=%s current=%r", path, field, current)
        return False
      transaction.update(ref, encoded)
      return True

    return await _apply(self._client.transaction())

  def new_document_path(self, collection_path: str) -> str:
    return self._client.collection(collection_path).document().path

  def batch(self) -> WriteBatch:
    return FirestoreWriteBatch(self._client)
