"""Property-wide broadcast of a notification to every resident device."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from propalert.core.context import HandlerContext, Outcome
from propalert.notifications.reconcile import collect_dead_tokens, send_in_chunks
from propalert.notifications.records import NotificationRecord
from propalert.notifications.scopes import PropertyScope, describe_scope
from propalert.notifications.token_registry import TOKENS_FIELD, TokenRegistry, normalize_tokens

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResidentTokens:
  resident_id: str
  tokens: tuple[str, ...]


def flatten_tokens(residents: list[ResidentTokens]) -> list[str]:
  """All tokens across residents, first occurrence wins so a device is pushed once."""
  seen: set[str] = set()
  flattened: list[str] = []
  for resident in residents:
    for token in resident.tokens:
      if token not in seen:
        seen.add(token)
        flattened.append(token)
  return flattened


def group_dead_tokens_by_owner(dead_tokens: list[str], residents: list[ResidentTokens]) -> dict[str, list[str]]:
  """Map failed tokens back to every resident that holds them."""
  dead = set(dead_tokens)
  owners: dict[str, list[str]] = defaultdict(list)
  for resident in residents:
    for token in resident.tokens:
      if token in dead:
        owners[resident.resident_id].append(token)
  return dict(owners)


class BroadcastDispatcher:
  """Fan a property notification out to all residents of that property.

  Unlike the single-recipient dispatcher this never marks the record ``sent``:
  a broadcast record is a property-level artifact and delivery happens per chunk.
  The flattened token list is also deduplicated, so a device shared by two
  residents receives the message once; a dead shared token is still pruned
  from every resident holding it.
  """

  def __init__(self, context: HandlerContext) -> None:
    self._context = context
    self._registry = TokenRegistry(context.store)

  async def handle_created(self, *, path: str, data: dict[str, Any], params: Mapping[str, str]) -> Outcome:
    """Entry point for a property notification created event. Never raises."""
    try:
      return await self._broadcast(path=path, data=data, params=params)
    except Exception as exc:  # noqa: BLE001
      logger.error("Property notification broadcast failed path=%s organization_id=%s error=%s", path, params.get("organizationId"), exc, exc_info=True)
      return Outcome.ERROR

  async def _broadcast(self, *, path: str, data: dict[str, Any], params: Mapping[str, str]) -> Outcome:
    organization_id = params.get("organizationId")
    property_id = params.get("propertyId")
    if not organization_id or not property_id:
      logger.error("Property notification %s is missing organization or property binding.", path)
      return Outcome.INVALID

    record = NotificationRecord.from_document(data)
    if not record.title and not record.body:
      logger.error("Property notification %s has neither title nor body; ignoring.", path)
      return Outcome.INVALID

    scope = PropertyScope(organization_id=organization_id, property_id=property_id)
    residents = await self._load_residents(scope)
    if not residents:
      logger.info("No resident push tokens for %s; nothing to broadcast for %s.", describe_scope(scope), path)
      return Outcome.NO_TOKENS

    tokens = flatten_tokens(residents)
    results = await send_in_chunks(self._context.push, tokens=tokens, title=record.title, body=record.body, data=record.push_data(), target=describe_scope(scope))

    dead: list[str] = []
    for result in results:
      dead.extend(collect_dead_tokens(result))

    # One removal per resident, however many of their tokens failed.
    for resident_id, resident_tokens in group_dead_tokens_by_owner(dead, residents).items():
      try:
        await self._registry.remove_tokens(scope.resident(resident_id), resident_tokens)
      except Exception as exc:  # noqa: BLE001
        logger.error("Failed pruning tokens for resident %s in %s: %s", resident_id, describe_scope(scope), exc, exc_info=True)

    succeeded = sum(result.success_count for result in results)
    logger.info("Property notification %s broadcast residents=%d tokens=%d chunks=%d succeeded=%d pruned=%d", path, len(residents), len(tokens), len(results), succeeded, len(dead))
    return Outcome.SENT

  async def _load_residents(self, scope: PropertyScope) -> list[ResidentTokens]:
    documents = await self._context.store.list_documents(scope.residents_path)
    residents = []
    for document in documents:
      tokens = normalize_tokens(document.data.get(TOKENS_FIELD))
      if tokens:
        residents.append(ResidentTokens(resident_id=document.id, tokens=tuple(tokens)))
    return residents
