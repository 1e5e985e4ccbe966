"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from propalert.utils.env import load_env_file, resolve_env_path

load_env_file(resolve_env_path(), override=False)

# Provider limit for a single multicast call.
MAX_MULTICAST_TOKENS = 500
# Firestore rejects batches above 500 writes; each escalation writes at most two documents.
MAX_ESCALATION_BATCH_LIMIT = 250

DEFAULT_REVIEW_URL_TEMPLATE = "https://search.google.com/local/writereview?placeid={place_id}"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the notification service."""

  environment: str
  debug: bool
  log_dir: Path
  log_max_bytes: int
  log_backup_count: int
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  push_enabled: bool
  multicast_batch_size: int
  escalation_grace_seconds: int
  escalation_batch_limit: int
  claim_notifications: bool
  review_url_template: str
  task_secret: str | None


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None or not raw.strip():
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  return value or None


def _parse_int(name: str, default: int, *, minimum: int, maximum: int | None = None) -> int:
  raw = os.getenv(name)
  if raw is None or not raw.strip():
    return default

  try:
    value = int(raw.strip())
  except ValueError as exc:
    raise ValueError(f"{name} must be an integer.") from exc

  if value < minimum:
    raise ValueError(f"{name} must be >= {minimum}.")
  if maximum is not None and value > maximum:
    raise ValueError(f"{name} must be <= {maximum}.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("PROPALERT_ENV", "development").strip().lower()
  debug = _parse_bool(os.getenv("PROPALERT_DEBUG"))

  log_dir_raw = _optional_str(os.getenv("PROPALERT_LOG_DIR"))
  log_dir = Path(log_dir_raw) if log_dir_raw else Path(__file__).resolve().parent.parent / "logs"
  log_max_bytes = _parse_int("PROPALERT_LOG_MAX_BYTES", 5242880, minimum=1)  # 5MB default
  log_backup_count = _parse_int("PROPALERT_LOG_BACKUP_COUNT", 10, minimum=0)

  multicast_batch_size = _parse_int("PROPALERT_MULTICAST_BATCH_SIZE", MAX_MULTICAST_TOKENS, minimum=1, maximum=MAX_MULTICAST_TOKENS)
  escalation_grace_seconds = _parse_int("PROPALERT_ESCALATION_GRACE_SECONDS", 300, minimum=1)
  escalation_batch_limit = _parse_int("PROPALERT_ESCALATION_BATCH_LIMIT", MAX_ESCALATION_BATCH_LIMIT, minimum=1, maximum=MAX_ESCALATION_BATCH_LIMIT)

  review_url_template = _optional_str(os.getenv("PROPALERT_REVIEW_URL_TEMPLATE")) or DEFAULT_REVIEW_URL_TEMPLATE
  if "{place_id}" not in review_url_template:
    raise ValueError("PROPALERT_REVIEW_URL_TEMPLATE must contain a {place_id} placeholder.")

  return Settings(
    environment=environment,
    debug=debug,
    log_dir=log_dir,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    firebase_project_id=_optional_str(os.getenv("PROPALERT_FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("PROPALERT_FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    push_enabled=_parse_bool(os.getenv("PROPALERT_PUSH_ENABLED"), default=True),
    multicast_batch_size=multicast_batch_size,
    escalation_grace_seconds=escalation_grace_seconds,
    escalation_batch_limit=escalation_batch_limit,
    claim_notifications=_parse_bool(os.getenv("PROPALERT_CLAIM_NOTIFICATIONS"), default=True),
    review_url_template=review_url_template,
    task_secret=_optional_str(os.getenv("PROPALERT_TASK_SECRET")),
  )
