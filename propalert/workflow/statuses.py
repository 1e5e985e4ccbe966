"""Status enumerations and allowed transitions for workflow documents."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WorkflowGraph:
  """Directed graph of status transitions for one document type."""

  name: str
  edges: dict[str, frozenset[str]]
  terminal: frozenset[str]

  @property
  def statuses(self) -> frozenset[str]:
    known = set(self.edges) | set(self.terminal)
    for targets in self.edges.values():
      known |= targets
    return frozenset(known)

  def can_transition(self, before: str | None, after: str) -> bool:
    if before is None:
      return after in self.statuses
    if before == after or before in self.terminal:
      return False
    return after in self.edges.get(before, frozenset())


VIOLATION_REPORTED = "reported"
VIOLATION_PENDING = "pending"
VIOLATION_PENDING_ACKNOWLEDGEMENT = "pending_acknowledgement"
VIOLATION_CLAIMED = "claimed"
VIOLATION_ACKNOWLEDGED = "acknowledged"
VIOLATION_ESCALATED_TO_MANAGER = "escalated_to_manager"
VIOLATION_PENDING_TOW = "pending_tow"
VIOLATION_TOWED = "towed"
VIOLATION_RESOLVED = "resolved"

VIOLATION_GRAPH = WorkflowGraph(
  name="violation",
  edges={
    VIOLATION_REPORTED: frozenset({VIOLATION_PENDING, VIOLATION_PENDING_ACKNOWLEDGEMENT, VIOLATION_CLAIMED, VIOLATION_PENDING_TOW, VIOLATION_RESOLVED}),
    VIOLATION_PENDING: frozenset({VIOLATION_PENDING_ACKNOWLEDGEMENT, VIOLATION_ACKNOWLEDGED, VIOLATION_PENDING_TOW, VIOLATION_RESOLVED}),
    VIOLATION_PENDING_ACKNOWLEDGEMENT: frozenset({VIOLATION_ACKNOWLEDGED, VIOLATION_ESCALATED_TO_MANAGER, VIOLATION_RESOLVED}),
    VIOLATION_CLAIMED: frozenset({VIOLATION_ACKNOWLEDGED, VIOLATION_PENDING_TOW, VIOLATION_RESOLVED}),
    VIOLATION_ACKNOWLEDGED: frozenset({VIOLATION_RESOLVED, VIOLATION_PENDING_TOW}),
    VIOLATION_PENDING_TOW: frozenset({VIOLATION_TOWED, VIOLATION_RESOLVED}),
  },
  terminal=frozenset({VIOLATION_ESCALATED_TO_MANAGER, VIOLATION_TOWED, VIOLATION_RESOLVED}),
)

SERVICE_SUBMITTED = "submitted"
SERVICE_PENDING = "pending"
SERVICE_ASSIGNED = "assigned"
SERVICE_EN_ROUTE = "en-route"
SERVICE_IN_PROGRESS = "in_progress"
SERVICE_ON_HOLD = "on_hold"
SERVICE_COMPLETE = "complete"
SERVICE_COMPLETED = "completed"
SERVICE_CANCELLED = "cancelled"

# Both spellings arrive from job sync; either one closes the request.
SERVICE_COMPLETE_STATUSES = frozenset({SERVICE_COMPLETE, SERVICE_COMPLETED})

_SERVICE_OPEN = frozenset({SERVICE_PENDING, SERVICE_ASSIGNED, SERVICE_EN_ROUTE, SERVICE_IN_PROGRESS, SERVICE_ON_HOLD})
_SERVICE_CLOSED = SERVICE_COMPLETE_STATUSES | {SERVICE_CANCELLED}

SERVICE_REQUEST_GRAPH = WorkflowGraph(
  name="service_request",
  edges={
    SERVICE_SUBMITTED: _SERVICE_OPEN | _SERVICE_CLOSED,
    SERVICE_PENDING: (_SERVICE_OPEN - {SERVICE_PENDING}) | _SERVICE_CLOSED,
    SERVICE_ASSIGNED: frozenset({SERVICE_EN_ROUTE, SERVICE_IN_PROGRESS, SERVICE_ON_HOLD}) | _SERVICE_CLOSED,
    SERVICE_EN_ROUTE: frozenset({SERVICE_IN_PROGRESS, SERVICE_ON_HOLD}) | _SERVICE_CLOSED,
    SERVICE_IN_PROGRESS: frozenset({SERVICE_ON_HOLD}) | _SERVICE_CLOSED,
    SERVICE_ON_HOLD: frozenset({SERVICE_ASSIGNED, SERVICE_EN_ROUTE, SERVICE_IN_PROGRESS}) | _SERVICE_CLOSED,
  },
  terminal=_SERVICE_CLOSED,
)
