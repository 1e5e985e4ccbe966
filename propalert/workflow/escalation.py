"""Periodic sweeps escalating violations that sat too long in an intermediate state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from propalert.core.context import HandlerContext
from propalert.notifications.records import build_record_document
from propalert.notifications.scopes import OrgUserScope, notifications_path
from propalert.storage.contracts import SERVER_TIMESTAMP, QueryFilter, StoredDocument
from propalert.workflow.statuses import VIOLATION_ESCALATED_TO_MANAGER, VIOLATION_GRAPH, VIOLATION_PENDING_ACKNOWLEDGEMENT, VIOLATION_PENDING_TOW, VIOLATION_REPORTED

logger = logging.getLogger(__name__)

ORGANIZATIONS_COLLECTION = "organizations"
TOWABLE_VIOLATION_TYPES = ("unauthorized_parking", "fire_lane", "double_parked")


@dataclass(frozen=True)
class EscalationRule:
  """One sweep: documents in ``source_status`` past the grace window move to ``target_status``."""

  name: str
  source_status: str
  target_status: str
  title: str
  body_template: str
  violation_types: tuple[str, ...] | None = None

  def render_body(self, document: StoredDocument) -> str:
    plate = document.data.get("licensePlate") or "unknown"
    return self.body_template.format(license_plate=plate)


UNACKNOWLEDGED_RULE = EscalationRule(
  name="unacknowledged",
  source_status=VIOLATION_PENDING_ACKNOWLEDGEMENT,
  target_status=VIOLATION_ESCALATED_TO_MANAGER,
  title="Violation Escalated",
  body_template="A parking violation for license plate {license_plate} has not been acknowledged and requires your attention.",
)

UNASSIGNED_RULE = EscalationRule(
  name="unassigned",
  source_status=VIOLATION_REPORTED,
  target_status=VIOLATION_PENDING_TOW,
  title="Violation Pending Tow",
  body_template="A parking violation for license plate {license_plate} has not been assigned and is now pending tow.",
  violation_types=TOWABLE_VIOLATION_TYPES,
)

ESCALATION_RULES: dict[str, EscalationRule] = {rule.name: rule for rule in (UNACKNOWLEDGED_RULE, UNASSIGNED_RULE)}


@dataclass
class SweepReport:
  rule: str
  organizations: int = 0
  escalated: int = 0
  notifications: int = 0
  failed_organizations: list[str] = field(default_factory=list)


class EscalationScheduler:
  """Run escalation sweeps one organization at a time.

  Each organization's matches are written in a single atomic batch, and a
  failing organization is logged and skipped so the rest of the sweep still runs.
  """

  def __init__(self, context: HandlerContext) -> None:
    self._context = context

  async def run(self, rule: EscalationRule) -> SweepReport:
    now = self._context.clock()
    cutoff = now - timedelta(seconds=self._context.settings.escalation_grace_seconds)
    report = SweepReport(rule=rule.name)
    logger.info("Running %s escalation sweep cutoff=%s", rule.name, cutoff.isoformat())

    try:
      organizations = await self._context.store.list_documents(ORGANIZATIONS_COLLECTION)
    except Exception as exc:  # noqa: BLE001
      logger.error("Escalation sweep %s could not list organizations: %s", rule.name, exc, exc_info=True)
      return report

    for organization in organizations:
      report.organizations += 1
      try:
        escalated, notified = await self._escalate_organization(rule, organization.id, cutoff=cutoff, now=now)
      except Exception as exc:  # noqa: BLE001
        logger.error("Escalation sweep %s failed for organization %s: %s", rule.name, organization.id, exc, exc_info=True)
        report.failed_organizations.append(organization.id)
        continue
      report.escalated += escalated
      report.notifications += notified

    logger.info("Escalation sweep %s finished organizations=%d escalated=%d notifications=%d failed=%d", rule.name, report.organizations, report.escalated, report.notifications, len(report.failed_organizations))
    return report

  async def _escalate_organization(self, rule: EscalationRule, organization_id: str, *, cutoff: datetime, now: datetime) -> tuple[int, int]:
    store = self._context.store
    filters = [QueryFilter("status", "==", rule.source_status)]
    if rule.violation_types:
      filters.append(QueryFilter("violationType", "in", list(rule.violation_types)))
    filters.append(QueryFilter("createdAt", "<=", cutoff))

    matches = await store.query(f"{ORGANIZATIONS_COLLECTION}/{organization_id}/violations", filters, limit=self._context.settings.escalation_batch_limit)
    if not matches:
      return 0, 0

    batch = store.batch()
    escalated = 0
    notified = 0
    for violation in matches:
      if not VIOLATION_GRAPH.can_transition(violation.data.get("status"), rule.target_status):
        logger.warning("Skipping violation %s: %s -> %s is not allowed", violation.path, violation.data.get("status"), rule.target_status)
        continue

      logger.info("Escalating violation %s in organization %s to %s", violation.id, organization_id, rule.target_status)
      batch.update(violation.path, {"status": rule.target_status, "escalatedAt": SERVER_TIMESTAMP})
      escalated += 1

      reporter_id = violation.data.get("reporterId")
      if reporter_id:
        scope = OrgUserScope(organization_id=organization_id, user_id=str(reporter_id))
        record = build_record_document(title=rule.title, body=rule.render_body(violation), link=f"/violations/{violation.id}", created_at=now)
        batch.set(store.new_document_path(notifications_path(scope)), record)
        notified += 1

    if escalated:
      await batch.commit()
    return escalated, notified
