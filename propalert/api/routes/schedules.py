"""Timer-driven sweeps invoked by Cloud Scheduler."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from propalert.api.models import SweepResponse
from propalert.core.context import HandlerContext
from propalert.core.security import get_handler_context, require_task_secret
from propalert.workflow.escalation import ESCALATION_RULES, EscalationScheduler

router = APIRouter(dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


@router.post("/escalations/{rule_name}", status_code=status.HTTP_200_OK)
async def run_escalation(rule_name: str, context: Annotated[HandlerContext, Depends(get_handler_context)]) -> SweepResponse:
  """Run one escalation sweep across every organization."""
  rule = ESCALATION_RULES.get(rule_name)
  if rule is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown escalation rule {rule_name!r}.")

  report = await EscalationScheduler(context).run(rule)
  return SweepResponse(rule=report.rule, organizations=report.organizations, escalated=report.escalated, notifications=report.notifications, failed_organizations=report.failed_organizations)
