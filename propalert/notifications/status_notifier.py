"""Push notifications for workflow status transitions."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from propalert.core.context import HandlerContext, Outcome
from propalert.notifications.catalog import SERVICE_REQUEST_MESSAGES, SERVICE_REQUEST_SETTINGS_FIELD, VIOLATION_MESSAGES, VIOLATION_SETTINGS_FIELD, MessageTemplate, build_review_url, resolve_message, resolve_review_message
from propalert.notifications.reconcile import deliver_to_recipient
from propalert.notifications.records import NotificationRecordStore, build_record_document
from propalert.notifications.scopes import ResidentScope, describe_scope
from propalert.notifications.token_registry import TokenRegistry
from propalert.utils.paths import document_id
from propalert.workflow.statuses import SERVICE_COMPLETE_STATUSES, SERVICE_REQUEST_GRAPH, VIOLATION_GRAPH, WorkflowGraph

logger = logging.getLogger(__name__)

RESIDENT_WARNING = MessageTemplate(title="Parking Violation Warning", body="Your vehicle is in a restricted area. Please move it within 5 minutes to avoid a formal citation.")


@dataclass(frozen=True)
class WorkflowKind:
  """How one workflow document type maps onto notifications."""

  name: str
  graph: WorkflowGraph
  defaults: Mapping[str, MessageTemplate]
  settings_field: str
  review_statuses: frozenset[str] = frozenset()


SERVICE_REQUEST = WorkflowKind(name="service_request", graph=SERVICE_REQUEST_GRAPH, defaults=SERVICE_REQUEST_MESSAGES, settings_field=SERVICE_REQUEST_SETTINGS_FIELD, review_statuses=SERVICE_COMPLETE_STATUSES)
VIOLATION = WorkflowKind(name="violation", graph=VIOLATION_GRAPH, defaults=VIOLATION_MESSAGES, settings_field=VIOLATION_SETTINGS_FIELD)


def status_changed(before: Mapping[str, Any], after: Mapping[str, Any]) -> bool:
  """Only the status field decides; edits elsewhere in the document never notify."""
  return before.get("status") != after.get("status")


def resident_newly_assigned(before: Mapping[str, Any], after: Mapping[str, Any]) -> bool:
  return not before.get("residentId") and bool(after.get("residentId"))


class StatusChangeNotifier:
  """Send the affected resident a catalog message when a workflow status changes.

  Status messages go straight to the resident's devices instead of through a
  notification record; newly matched violations enqueue a warning record.
  """

  def __init__(self, context: HandlerContext) -> None:
    self._context = context
    self._registry = TokenRegistry(context.store)
    self._records = NotificationRecordStore(context.store)

  async def handle_update(self, kind: WorkflowKind, *, path: str, params: Mapping[str, str], before: dict[str, Any] | None, after: dict[str, Any] | None) -> Outcome:
    """Entry point for a workflow document update. Never raises."""
    organization_id = (after or {}).get("organizationId") or params.get("organizationId")
    try:
      if before is None or after is None:
        logger.error("Update event for %s is missing its before or after state.", path)
        return Outcome.INVALID

      outcome = Outcome.SKIPPED
      if kind is VIOLATION and resident_newly_assigned(before, after):
        outcome = await self._warn_assigned_resident(path=path, params=params, after=after)

      if not status_changed(before, after):
        logger.debug("Status for %s %s has not changed.", kind.name, path)
        return outcome

      return await self._notify_status(kind, path=path, params=params, before=before, after=after)
    except Exception as exc:  # noqa: BLE001
      logger.error("Status change handling failed kind=%s path=%s organization_id=%s error=%s", kind.name, path, organization_id, exc, exc_info=True)
      return Outcome.ERROR

  async def _notify_status(self, kind: WorkflowKind, *, path: str, params: Mapping[str, str], before: dict[str, Any], after: dict[str, Any]) -> Outcome:
    status = after.get("status")
    organization_id = after.get("organizationId") or params.get("organizationId")
    property_id = after.get("propertyId")
    resident_id = after.get("residentId")
    if not status or not organization_id or not property_id or not resident_id:
      logger.error("Missing required fields in %s document %s (status=%s organization_id=%s property_id=%s resident_id=%s).", kind.name, path, status, organization_id, property_id, resident_id)
      return Outcome.INVALID

    previous = before.get("status")
    if not kind.graph.can_transition(previous, status):
      logger.warning("Unexpected %s transition %s -> %s for %s", kind.name, previous, status, path)

    organization = await self._context.store.get(f"organizations/{organization_id}")
    overrides = organization.data.get(kind.settings_field) if organization else None
    message = resolve_message(status, overrides, kind.defaults)
    if message is None:
      logger.info("No notification configured for %s status %r in organization %s.", kind.name, status, organization_id)
      return Outcome.SKIPPED

    scope = ResidentScope(organization_id=organization_id, property_id=property_id, resident_id=resident_id)
    tokens = await self._registry.load_tokens(scope)
    if tokens is None:
      logger.warning("Resident profile not found for %s (%s %s).", describe_scope(scope), kind.name, path)
      return Outcome.MISSING_PROFILE
    if not tokens:
      logger.info("No push tokens for %s; skipping %s status %r.", describe_scope(scope), kind.name, status)
      return Outcome.NO_TOKENS

    report = await deliver_to_recipient(self._context.push, self._registry, scope, tokens=tokens, title=message.title, body=message.body, data={})
    logger.info("Status %r notification for %s %s succeeded=%d failed=%d", status, kind.name, path, report.succeeded, report.failed)

    if status in kind.review_statuses:
      pruned = set(report.pruned)
      remaining = [token for token in tokens if token not in pruned]
      await self._request_review(scope, overrides=overrides, tokens=remaining)
    return Outcome.SENT

  async def _request_review(self, scope: ResidentScope, *, overrides: Any, tokens: list[str]) -> None:
    """Ask the resident for a review when the property is linked to a review location."""
    if not tokens:
      return

    property_doc = await self._context.store.get(f"organizations/{scope.organization_id}/properties/{scope.property_id}")
    gmb = property_doc.data.get("gmb") if property_doc else None
    place_id = gmb.get("placeId") if isinstance(gmb, Mapping) else None
    if not place_id:
      logger.debug("Property %s has no review location; skipping review request.", scope.property_id)
      return

    review_url = build_review_url(str(place_id), self._context.settings.review_url_template)
    message = resolve_review_message(overrides, review_url)
    if message is None:
      logger.debug("Organization %s has no review template; skipping review request.", scope.organization_id)
      return

    report = await deliver_to_recipient(self._context.push, self._registry, scope, tokens=tokens, title=message.title, body=message.body, data={})
    logger.info("Review request sent to %s succeeded=%d failed=%d", describe_scope(scope), report.succeeded, report.failed)

  async def _warn_assigned_resident(self, *, path: str, params: Mapping[str, str], after: dict[str, Any]) -> Outcome:
    violation_id = params.get("violationId") or document_id(path)
    organization_id = params.get("organizationId") or after.get("organizationId")
    property_id = after.get("propertyId")
    if not organization_id or not property_id:
      logger.error("Violation %s is missing propertyId; cannot warn resident.", violation_id)
      return Outcome.INVALID

    scope = ResidentScope(organization_id=organization_id, property_id=property_id, resident_id=str(after["residentId"]))
    record = build_record_document(title=RESIDENT_WARNING.title, body=RESIDENT_WARNING.body, link=f"/violations/{violation_id}", created_at=self._context.clock())
    record_path = await self._records.create(scope, record)
    logger.info("Violation warning %s created for %s", record_path, describe_scope(scope))
    return Outcome.RECORD_CREATED
