"""Shared send-and-prune logic for every push path."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from propalert.notifications.contracts import PERMANENT_FAILURE_CODES, MulticastResult, PushChannel, PushEnvelope, TokenSendResult, chunk_tokens
from propalert.notifications.scopes import RecipientScope, describe_scope
from propalert.notifications.token_registry import TokenRegistry

logger = logging.getLogger(__name__)


def is_permanent_failure(result: TokenSendResult) -> bool:
  """True when the provider reports the token itself as undeliverable."""
  return not result.success and result.error_code in PERMANENT_FAILURE_CODES


def collect_dead_tokens(result: MulticastResult) -> list[str]:
  """Tokens whose failure is permanent, in send order."""
  return [item.token for item in result.results if is_permanent_failure(item)]


def log_transient_failures(result: MulticastResult, *, target: str) -> None:
  for item in result.failures():
    if not is_permanent_failure(item):
      logger.warning("Push delivery failed target=%s token=%s code=%s error=%s", target, _redact(item.token), item.error_code, item.error_message)


def _redact(token: str) -> str:
  return f"{token[:8]}…" if len(token) > 8 else token


@dataclass(frozen=True)
class DeliveryReport:
  """Summary of one send-and-reconcile pass."""

  attempted: int
  succeeded: int
  failed: int
  pruned: tuple[str, ...]


async def send_in_chunks(push: PushChannel, *, tokens: Sequence[str], title: str, body: str, data: dict[str, str], target: str) -> list[MulticastResult]:
  """Send one message to every token, one multicast call per provider-sized chunk."""
  results: list[MulticastResult] = []
  for chunk in chunk_tokens(tokens, push.max_batch_size):
    result = await push.send_multicast(PushEnvelope(tokens=tuple(chunk), title=title, body=body, data=dict(data)))
    logger.info("Sent push to %d token(s) target=%s success=%d failure=%d", len(chunk), target, result.success_count, result.failure_count)
    log_transient_failures(result, target=target)
    results.append(result)
  return results


async def deliver_to_recipient(push: PushChannel, registry: TokenRegistry, scope: RecipientScope, *, tokens: Sequence[str], title: str, body: str, data: dict[str, str]) -> DeliveryReport:
  """Send to one recipient's tokens and prune the ones reported permanently invalid."""
  target = describe_scope(scope)
  results = await send_in_chunks(push, tokens=tokens, title=title, body=body, data=data, target=target)

  dead: list[str] = []
  for result in results:
    dead.extend(collect_dead_tokens(result))
  if dead:
    await registry.remove_tokens(scope, dead)

  succeeded = sum(result.success_count for result in results)
  failed = sum(result.failure_count for result in results)
  return DeliveryReport(attempted=len(tokens), succeeded=succeeded, failed=failed, pruned=tuple(dead))
