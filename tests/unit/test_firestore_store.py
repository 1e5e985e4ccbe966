from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from google.api_core.exceptions import NotFound
from google.cloud import firestore

from propalert.storage.contracts import SERVER_TIMESTAMP, DocumentNotFoundError, QueryFilter
from propalert.storage.firestore_store import FirestoreDocumentStore


def _snapshot(path: str, data: dict) -> MagicMock:
  snapshot = MagicMock()
  snapshot.reference.path = path
  snapshot.to_dict.return_value = data
  snapshot.exists = True
  return snapshot


async def _stream(snapshots):
  for snapshot in snapshots:
    yield snapshot


@pytest.mark.anyio
async def test_update_translates_server_timestamp():
  client = MagicMock()
  ref = client.document.return_value
  ref.update = AsyncMock()

  await FirestoreDocumentStore(client).update("notifications/n1", {"status": "sent", "sentAt": SERVER_TIMESTAMP})

  client.document.assert_called_once_with("notifications/n1")
  ref.update.assert_awaited_once_with({"status": "sent", "sentAt": firestore.SERVER_TIMESTAMP})


@pytest.mark.anyio
async def test_update_of_missing_document_raises():
  client = MagicMock()
  client.document.return_value.update = AsyncMock(side_effect=NotFound("no document"))

  with pytest.raises(DocumentNotFoundError):
    await FirestoreDocumentStore(client).update("userProfiles/u1", {"fcmTokens": []})


@pytest.mark.anyio
async def test_array_remove_uses_field_transform():
  client = MagicMock()
  ref = client.document.return_value
  ref.update = AsyncMock()

  await FirestoreDocumentStore(client).array_remove("userProfiles/u1", "fcmTokens", ["A", "B"])

  payload = ref.update.await_args.args[0]
  assert isinstance(payload["fcmTokens"], firestore.ArrayRemove)
  assert list(payload["fcmTokens"].values) == ["A", "B"]


@pytest.mark.anyio
async def test_get_missing_document_returns_none():
  client = MagicMock()
  snapshot = MagicMock()
  snapshot.exists = False
  client.document.return_value.get = AsyncMock(return_value=snapshot)

  assert await FirestoreDocumentStore(client).get("userProfiles/u1") is None


@pytest.mark.anyio
async def test_query_applies_filters_and_limit():
  client = MagicMock()
  query = client.collection.return_value
  query.where.return_value = query
  query.limit.return_value = query
  query.stream = lambda: _stream([_snapshot("organizations/o1/violations/v1", {"status": "reported"})])

  documents = await FirestoreDocumentStore(client).query("organizations/o1/violations", [QueryFilter("status", "==", "reported"), QueryFilter("violationType", "in", ["fire_lane"])], limit=10)

  assert [document.id for document in documents] == ["v1"]
  assert query.where.call_count == 2
  first_filter = query.where.call_args_list[0].kwargs["filter"]
  assert (first_filter.field_path, first_filter.op_string, first_filter.value) == ("status", "==", "reported")
  query.limit.assert_called_once_with(10)


@pytest.mark.anyio
async def test_add_returns_created_path():
  client = MagicMock()
  ref = MagicMock()
  ref.path = "userProfiles/u1/notifications/generated"
  client.collection.return_value.add = AsyncMock(return_value=(None, ref))

  path = await FirestoreDocumentStore(client).add("userProfiles/u1/notifications", {"title": "Hi", "createdAt": SERVER_TIMESTAMP})

  assert path == "userProfiles/u1/notifications/generated"
  assert client.collection.return_value.add.await_args.args[0]["createdAt"] is firestore.SERVER_TIMESTAMP
