"""Notification records: the unit of work consumed by the dispatchers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from propalert.notifications.scopes import RecipientScope, notifications_path
from propalert.storage.contracts import SERVER_TIMESTAMP, DocumentStore

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_SENT = "sent"

# Records written by older producers carry no status at all.
CLAIMABLE_STATUSES = frozenset({None, STATUS_PENDING})

SYSTEM_AUTHOR = "system"


@dataclass(frozen=True)
class NotificationRecord:
  """Typed view over a notification document."""

  title: str
  body: str
  link: str | None = None
  mobile_link: str | None = None
  created_by: str | None = None
  created_at: Any = None
  status: str | None = None
  sent_at: Any = None
  user_id: str | None = None

  @classmethod
  def from_document(cls, data: dict[str, Any]) -> NotificationRecord:
    """Read a record, accepting the legacy ``message`` key for the body."""
    return cls(
      title=str(data.get("title") or ""),
      body=str(data.get("body") or data.get("message") or ""),
      link=_optional_text(data.get("link")),
      mobile_link=_optional_text(data.get("mobileLink")),
      created_by=_optional_text(data.get("createdBy")),
      created_at=data.get("createdAt"),
      status=_optional_text(data.get("status")),
      sent_at=data.get("sentAt"),
      user_id=_optional_text(data.get("userId")),
    )

  def push_data(self) -> dict[str, str]:
    """Deep links for the push data payload; absent links are omitted, never null."""
    data: dict[str, str] = {}
    if self.link:
      data["link"] = self.link
    if self.mobile_link:
      data["mobileLink"] = self.mobile_link
    return data


def _optional_text(value: Any) -> str | None:
  if value is None:
    return None
  text = str(value).strip()
  return text or None


def build_record_document(*, title: str, body: str, link: str | None = None, mobile_link: str | None = None, created_by: str = SYSTEM_AUTHOR, created_at: Any = SERVER_TIMESTAMP) -> dict[str, Any]:
  """Return the document body for a new pending notification record."""
  document: dict[str, Any] = {"title": title, "body": body, "createdBy": created_by, "createdAt": created_at, "status": STATUS_PENDING, "read": False}
  if link:
    document["link"] = link
  if mobile_link:
    document["mobileLink"] = mobile_link
  return document


class NotificationRecordStore:
  """Create, claim and complete notification records."""

  def __init__(self, store: DocumentStore) -> None:
    self._store = store

  async def create(self, scope: RecipientScope, document: dict[str, Any]) -> str:
    """Append a record to the recipient's notification collection."""
    return await self._store.add(notifications_path(scope), document)

  async def claim(self, path: str) -> bool:
    """Move a record from pending to processing; False when another invocation owns it."""
    return await self._store.compare_and_set(path, "status", expected=CLAIMABLE_STATUSES, value=STATUS_PROCESSING)

  async def mark_sent(self, path: str) -> None:
    """Record that delivery was attempted."""
    await self._store.update(path, {"status": STATUS_SENT, "sentAt": SERVER_TIMESTAMP})
