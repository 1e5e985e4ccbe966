"""Single-recipient dispatcher for newly created notification records."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from propalert.core.context import HandlerContext, Outcome
from propalert.notifications.contracts import RecipientResolutionError
from propalert.notifications.reconcile import deliver_to_recipient
from propalert.notifications.records import NotificationRecord, NotificationRecordStore
from propalert.notifications.scopes import AdminScope, RecipientScope, describe_scope, scope_from_event_params
from propalert.notifications.token_registry import TokenRegistry

logger = logging.getLogger(__name__)


class Dispatcher:
  """Send a new notification record to every device of its recipient.

  The record is claimed before sending (when enabled) so a redelivered create
  event does not push twice, and it is marked ``sent`` once delivery has been
  attempted, whatever the per-token outcome.
  """

  def __init__(self, context: HandlerContext) -> None:
    self._context = context
    self._records = NotificationRecordStore(context.store)
    self._registry = TokenRegistry(context.store)

  async def handle_created(self, *, path: str, data: dict[str, Any], params: Mapping[str, str]) -> Outcome:
    """Entry point for a record-created event. Never raises."""
    try:
      return await self._dispatch(path=path, data=data, params=params)
    except Exception as exc:  # noqa: BLE001
      logger.error("Notification dispatch failed path=%s organization_id=%s error=%s", path, params.get("organizationId"), exc, exc_info=True)
      return Outcome.ERROR

  async def _dispatch(self, *, path: str, data: dict[str, Any], params: Mapping[str, str]) -> Outcome:
    record = NotificationRecord.from_document(data)
    scope = _resolve_scope(params, record)
    if scope is None:
      logger.error("Notification %s does not identify a recipient; ignoring.", path)
      return Outcome.INVALID

    if not record.title and not record.body:
      logger.error("Notification %s has neither title nor body; ignoring.", path)
      return Outcome.INVALID

    if self._context.settings.claim_notifications and not await self._records.claim(path):
      logger.info("Notification %s already claimed or sent; skipping redelivered event.", path)
      return Outcome.ALREADY_CLAIMED

    target = describe_scope(scope)
    tokens = await self._registry.load_tokens(scope)
    if tokens is None:
      logger.warning("Recipient profile not found for %s (notification %s).", target, path)
      await self._records.mark_sent(path)
      return Outcome.MISSING_PROFILE

    if not tokens:
      logger.info("No push tokens for %s; nothing to deliver for %s.", target, path)
      await self._records.mark_sent(path)
      return Outcome.NO_TOKENS

    report = await deliver_to_recipient(self._context.push, self._registry, scope, tokens=tokens, title=record.title, body=record.body, data=record.push_data())
    await self._records.mark_sent(path)
    logger.info("Notification %s dispatched to %s attempted=%d succeeded=%d pruned=%d", path, target, report.attempted, report.succeeded, len(report.pruned))
    return Outcome.SENT


def _resolve_scope(params: Mapping[str, str], record: NotificationRecord) -> RecipientScope | None:
  try:
    return scope_from_event_params(params)
  except RecipientResolutionError:
    # Top-level notifications/{id} records address their admin recipient by field.
    if record.user_id:
      return AdminScope(user_id=record.user_id)
    return None
