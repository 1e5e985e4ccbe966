"""Explicit dependencies shared by every trigger handler and scheduled job."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from propalert.config import Settings
from propalert.notifications.contracts import PushChannel
from propalert.storage.contracts import DocumentStore


def utcnow() -> datetime:
  return datetime.now(UTC)


@dataclass(frozen=True)
class HandlerContext:
  """Store, push channel, settings and clock, built once per process."""

  store: DocumentStore
  push: PushChannel
  settings: Settings
  clock: Callable[[], datetime] = field(default=utcnow)


class Outcome(StrEnum):
  """Terminal result of a handler invocation, reported back to the event source."""

  SENT = "sent"
  NO_TOKENS = "no_tokens"
  MISSING_PROFILE = "missing_profile"
  ALREADY_CLAIMED = "already_claimed"
  RECORD_CREATED = "record_created"
  UPDATED = "updated"
  SKIPPED = "skipped"
  INVALID = "invalid"
  ERROR = "error"
