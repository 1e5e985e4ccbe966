"""Push notification delivery implementations."""

from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging
from starlette.concurrency import run_in_threadpool

from propalert.config import MAX_MULTICAST_TOKENS
from propalert.notifications.contracts import (
  INVALID_ARGUMENT,
  INVALID_REGISTRATION_TOKEN,
  REGISTRATION_TOKEN_NOT_REGISTERED,
  UNKNOWN_ERROR,
  MulticastResult,
  PushChannel,
  PushChannelError,
  PushEnvelope,
  TokenSendResult,
)

logger = logging.getLogger(__name__)


class FcmPushChannel(PushChannel):
  """`firebase_admin.messaging` backed multicast sender."""

  def __init__(self, *, app: firebase_admin.App | None = None, batch_size: int = MAX_MULTICAST_TOKENS) -> None:
    if not 0 < batch_size <= MAX_MULTICAST_TOKENS:
      raise ValueError(f"batch_size must be between 1 and {MAX_MULTICAST_TOKENS}.")
    self._app = app
    self._batch_size = batch_size

  @property
  def max_batch_size(self) -> int:
    return self._batch_size

  async def send_multicast(self, envelope: PushEnvelope) -> MulticastResult:
    """Send one multicast request; the SDK call blocks so it runs in the threadpool."""
    if not envelope.tokens:
      return MulticastResult(results=())
    if len(envelope.tokens) > self._batch_size:
      raise ValueError(f"Multicast accepts at most {self._batch_size} tokens, got {len(envelope.tokens)}.")

    message = messaging.MulticastMessage(tokens=list(envelope.tokens), notification=messaging.Notification(title=envelope.title, body=envelope.body), data=dict(envelope.data) or None)
    try:
      response = await run_in_threadpool(messaging.send_each_for_multicast, message, False, self._app)
    except firebase_exceptions.FirebaseError as exc:
      raise PushChannelError(f"Multicast send rejected (code={exc.code})") from exc

    results = []
    for token, send_response in zip(envelope.tokens, response.responses, strict=True):
      if send_response.success:
        results.append(TokenSendResult(token=token, success=True))
        continue
      exc = send_response.exception
      results.append(TokenSendResult(token=token, success=False, error_code=classify_fcm_exception(exc), error_message=str(exc) if exc else None))
    return MulticastResult(results=tuple(results))


class NullPushChannel(PushChannel):
  """No-op channel used when push delivery is disabled or unconfigured."""

  def __init__(self, *, batch_size: int = MAX_MULTICAST_TOKENS) -> None:
    self._batch_size = batch_size

  @property
  def max_batch_size(self) -> int:
    return self._batch_size

  async def send_multicast(self, envelope: PushEnvelope) -> MulticastResult:
    logger.debug("Push delivery disabled; dropping multicast token_count=%d", len(envelope.tokens))
    return MulticastResult(results=tuple(TokenSendResult(token=token, success=True) for token in envelope.tokens))


def classify_fcm_exception(exc: Exception | None) -> str:
  """Map an FCM per-token exception onto a stable failure code."""
  if exc is None:
    return UNKNOWN_ERROR

  if isinstance(exc, messaging.UnregisteredError):
    return REGISTRATION_TOKEN_NOT_REGISTERED

  if isinstance(exc, firebase_exceptions.InvalidArgumentError):
    # INVALID_ARGUMENT also covers malformed payloads; only token complaints are permanent.
    if "registration token" in str(exc).lower():
      return INVALID_REGISTRATION_TOKEN
    return INVALID_ARGUMENT

  code = getattr(exc, "code", None)
  if isinstance(code, str) and code:
    return f"messaging/{code.lower().replace('_', '-')}"
  return UNKNOWN_ERROR
