import logging
from typing import Any

import firebase_admin
from firebase_admin import auth, credentials, firestore_async
from google.cloud.firestore import AsyncClient

from propalert.config import Settings

logger = logging.getLogger(__name__)


def initialize_firebase(settings: Settings) -> firebase_admin.App | None:
  """Initializes the Firebase Admin SDK."""
  if firebase_admin._apps:
    return firebase_admin.get_app()

  if not settings.firebase_project_id:
    logger.warning("Firebase Project ID not set. Firebase Admin SDK not initialized.")
    return None

  try:
    if settings.firebase_service_account_json_path:
      cred = credentials.Certificate(settings.firebase_service_account_json_path)
      app = firebase_admin.initialize_app(cred, {"projectId": settings.firebase_project_id})
    else:
      # Use default credentials (e.g. Google Application Default Credentials)
      app = firebase_admin.initialize_app(options={"projectId": settings.firebase_project_id})
    logger.info("Firebase Admin SDK initialized successfully.")
    return app
  except Exception as e:  # noqa: BLE001
    logger.error("Failed to initialize Firebase Admin SDK: %s", e)
    return None


def get_firestore_client(settings: Settings) -> AsyncClient | None:
  """Returns an async Firestore client. Lazily initializes if needed."""
  if initialize_firebase(settings) is None:
    return None

  try:
    return firestore_async.client()
  except Exception as e:  # noqa: BLE001
    logger.error("Failed to get Firestore client: %s", e)
    return None


def verify_id_token(id_token: str) -> dict[str, Any] | None:
  """Verifies a Firebase ID token."""
  if not firebase_admin._apps:
    logger.error("Token verification requested before Firebase initialization.")
    return None

  try:
    return auth.verify_id_token(id_token)
  except Exception as e:  # noqa: BLE001
    logger.warning("Token verification failed: %s", e)
    return None
