from __future__ import annotations

import pytest

from propalert.notifications.scopes import AdminScope, ResidentScope
from propalert.notifications.token_registry import TokenRegistry, normalize_tokens

SCOPE = ResidentScope(organization_id="org-1", property_id="prop-1", resident_id="res-1")
PATH = "organizations/org-1/properties/prop-1/residents/res-1"


def test_normalize_tokens_drops_blanks_duplicates_and_non_strings():
  assert normalize_tokens(["A", " B ", "", "  ", None, 3, "A"]) == ["A", " B "]
  assert normalize_tokens("A") == []
  assert normalize_tokens(None) == []


@pytest.mark.anyio
async def test_load_tokens_distinguishes_missing_profile(store):
  registry = TokenRegistry(store)
  store.documents[PATH] = {"name": "Res"}

  assert await registry.load_tokens(SCOPE) == []
  assert await registry.load_tokens(AdminScope(user_id="nobody")) is None


@pytest.mark.anyio
async def test_register_token_is_idempotent(store):
  store.documents["userProfiles/admin-1"] = {"fcmTokens": ["A"]}
  registry = TokenRegistry(store)

  await registry.register_token(AdminScope(user_id="admin-1"), "B")
  await registry.register_token(AdminScope(user_id="admin-1"), " B ")

  assert store.documents["userProfiles/admin-1"]["fcmTokens"] == ["A", "B"]


@pytest.mark.anyio
async def test_register_token_rejects_blank(store):
  with pytest.raises(ValueError):
    await TokenRegistry(store).register_token(SCOPE, "  ")


@pytest.mark.anyio
async def test_remove_tokens_uses_one_set_difference_write(store):
  store.documents[PATH] = {"fcmTokens": ["A", "B", "C"]}

  removed = await TokenRegistry(store).remove_tokens(SCOPE, ["C", "A", "C"])

  assert removed == 2
  assert store.writes == [("array_remove", PATH, {"fcmTokens": ["A", "C"]})]
  assert store.documents[PATH]["fcmTokens"] == ["B"]


@pytest.mark.anyio
async def test_remove_nothing_writes_nothing(store):
  assert await TokenRegistry(store).remove_tokens(SCOPE, []) == 0
  assert store.writes == []
