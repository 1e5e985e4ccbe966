"""Status message catalogs with organization-level overrides."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from propalert.config import DEFAULT_REVIEW_URL_TEMPLATE

REVIEW_KEY = "review"
REVIEW_LINK_PLACEHOLDER = "{{reviewLink}}"

SERVICE_REQUEST_SETTINGS_FIELD = "notificationSettings"
VIOLATION_SETTINGS_FIELD = "violationNotificationSettings"


@dataclass(frozen=True)
class MessageTemplate:
  title: str
  body: str


SERVICE_REQUEST_MESSAGES: dict[str, MessageTemplate] = {
  "en-route": MessageTemplate(title="Technician En Route", body="Your technician is on their way."),
  "complete": MessageTemplate(title="Service Complete", body="Your service request has been marked as complete."),
  "completed": MessageTemplate(title="Service Complete", body="Your service request has been marked as complete."),
  "cancelled": MessageTemplate(title="Service Canceled", body="Your service request has been canceled."),
}

VIOLATION_MESSAGES: dict[str, MessageTemplate] = {
  "pending_tow": MessageTemplate(title="Vehicle Scheduled for Tow", body="Your vehicle has not been moved and is now scheduled to be towed."),
  "towed": MessageTemplate(title="Vehicle Towed", body="Your vehicle has been towed. Contact your property manager for details."),
  "resolved": MessageTemplate(title="Violation Resolved", body="The parking violation on your vehicle has been resolved."),
}


def template_from_entry(entry: Any) -> MessageTemplate | None:
  """Read a catalog entry; the text may live under ``body`` or the older ``message`` key."""
  if isinstance(entry, MessageTemplate):
    return entry
  if not isinstance(entry, Mapping):
    return None
  title = entry.get("title")
  body = entry.get("body") or entry.get("message")
  if not isinstance(title, str) or not isinstance(body, str) or not title.strip() or not body.strip():
    return None
  return MessageTemplate(title=title, body=body)


def resolve_message(status: str, overrides: Any, defaults: Mapping[str, MessageTemplate]) -> MessageTemplate | None:
  """Organization override first, then the built-in default; None when neither is usable."""
  if isinstance(overrides, Mapping):
    override = template_from_entry(overrides.get(status))
    if override is not None:
      return override
  return template_from_entry(defaults.get(status))


def build_review_url(place_id: str, template: str = DEFAULT_REVIEW_URL_TEMPLATE) -> str:
  return template.format(place_id=place_id)


def resolve_review_message(overrides: Any, review_url: str) -> MessageTemplate | None:
  """Review request text, only when the organization configured one."""
  if not isinstance(overrides, Mapping):
    return None
  template = template_from_entry(overrides.get(REVIEW_KEY))
  if template is None:
    return None
  return MessageTemplate(title=template.title, body=template.body.replace(REVIEW_LINK_PLACEHOLDER, review_url))
