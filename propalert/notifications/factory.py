"""Factory helpers for the handler context."""

from __future__ import annotations

import logging

import firebase_admin

from propalert.config import Settings
from propalert.core.context import HandlerContext
from propalert.core.firebase import get_firestore_client, initialize_firebase
from propalert.notifications.contracts import PushChannel
from propalert.notifications.push_sender import FcmPushChannel, NullPushChannel
from propalert.storage.firestore_store import FirestoreDocumentStore

logger = logging.getLogger(__name__)


def build_push_channel(settings: Settings, *, app: firebase_admin.App | None) -> PushChannel:
  """FCM when enabled and Firebase is up, otherwise a channel that drops sends."""
  if settings.push_enabled and app is not None:
    return FcmPushChannel(app=app, batch_size=settings.multicast_batch_size)

  if settings.push_enabled:
    logger.warning("Push delivery enabled but Firebase is not initialized; using the null push channel.")
  return NullPushChannel(batch_size=settings.multicast_batch_size)


def build_handler_context(settings: Settings) -> HandlerContext | None:
  """Construct the process-wide context, or None when Firestore is unavailable."""
  app = initialize_firebase(settings)
  client = get_firestore_client(settings)
  if client is None:
    logger.error("Firestore client unavailable; event handlers are disabled.")
    return None

  return HandlerContext(store=FirestoreDocumentStore(client), push=build_push_channel(settings, app=app), settings=settings)
