"""Contracts for push notification delivery."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

# Failure codes reported for a single token in a multicast send.
INVALID_REGISTRATION_TOKEN = "messaging/invalid-registration-token"
REGISTRATION_TOKEN_NOT_REGISTERED = "messaging/registration-token-not-registered"
INVALID_ARGUMENT = "messaging/invalid-argument"
UNKNOWN_ERROR = "messaging/unknown-error"

PERMANENT_FAILURE_CODES = frozenset({INVALID_REGISTRATION_TOKEN, REGISTRATION_TOKEN_NOT_REGISTERED})


@dataclass(frozen=True)
class PushEnvelope:
  """Represents one notification addressed to a list of device tokens."""

  tokens: tuple[str, ...]
  title: str
  body: str
  data: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TokenSendResult:
  """Outcome of a multicast send for a single device token."""

  token: str
  success: bool
  error_code: str | None = None
  error_message: str | None = None


@dataclass(frozen=True)
class MulticastResult:
  """Per-token outcomes of one multicast send, in token order."""

  results: tuple[TokenSendResult, ...]

  @property
  def success_count(self) -> int:
    return sum(1 for result in self.results if result.success)

  @property
  def failure_count(self) -> int:
    return len(self.results) - self.success_count

  def failures(self) -> list[TokenSendResult]:
    return [result for result in self.results if not result.success]


class NotificationError(Exception):
  """Base class for all notification delivery failures."""


class PushChannelError(NotificationError):
  """Raised when the push provider rejects a whole multicast request."""


class RecipientResolutionError(NotificationError):
  """Raised when event parameters do not identify a recipient."""


class PushChannel(Protocol):
  """Delivery contract for multicast push sends."""

  @property
  def max_batch_size(self) -> int:
    """Largest number of tokens accepted by a single send."""

  async def send_multicast(self, envelope: PushEnvelope) -> MulticastResult:
    """Send one envelope to every token and report per-token results."""


def chunk_tokens(tokens: Sequence[str], size: int) -> list[list[str]]:
  """Split tokens into consecutive batches no larger than ``size``."""
  if size <= 0:
    raise ValueError("Batch size must be positive.")
  return [list(tokens[index : index + size]) for index in range(0, len(tokens), size)]
