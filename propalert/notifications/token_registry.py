"""Recipient token registry backed by the ``fcmTokens`` field of profile documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from propalert.notifications.scopes import RecipientScope, describe_scope, resolve_path
from propalert.storage.contracts import DocumentStore

logger = logging.getLogger(__name__)

TOKENS_FIELD = "fcmTokens"


def normalize_tokens(raw: Any) -> list[str]:
  """Return the usable tokens of a stored field exactly as stored, order preserved and deduplicated.

  Entries are never trimmed: the strings sent and pruned must match the stored ones.
  """
  if not isinstance(raw, list):
    return []

  seen: set[str] = set()
  tokens: list[str] = []
  for item in raw:
    if not isinstance(item, str):
      continue
    if item.strip() and item not in seen:
      seen.add(item)
      tokens.append(item)
  return tokens


class TokenRegistry:
  """Read and mutate device tokens with associative array updates only."""

  def __init__(self, store: DocumentStore) -> None:
    self._store = store

  async def load_tokens(self, scope: RecipientScope) -> list[str] | None:
    """Return the recipient's tokens, or None when the profile does not exist."""
    document = await self._store.get(resolve_path(scope))
    if document is None:
      return None
    return normalize_tokens(document.data.get(TOKENS_FIELD))

  async def register_token(self, scope: RecipientScope, token: str) -> None:
    """Add a token; the union keeps the set free of duplicates under concurrent writers."""
    token = token.strip()
    if not token:
      raise ValueError("Token must not be empty.")
    await self._store.array_union(resolve_path(scope), TOKENS_FIELD, [token])
    logger.info("Registered push token for %s", describe_scope(scope))

  async def remove_tokens(self, scope: RecipientScope, tokens: Iterable[str]) -> int:
    """Remove tokens with a set-difference update and return how many were requested."""
    unique = sorted(set(tokens))
    if not unique:
      return 0
    await self._store.array_remove(resolve_path(scope), TOKENS_FIELD, unique)
    logger.info("Pruned %d push token(s) for %s", len(unique), describe_scope(scope))
    return len(unique)
