"""Document write events delivered by the platform's event source."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from propalert.api.models import DocumentEvent, HandlerResponse
from propalert.core.context import HandlerContext
from propalert.core.security import get_handler_context, require_task_secret
from propalert.notifications.broadcast import BroadcastDispatcher
from propalert.notifications.dispatcher import Dispatcher
from propalert.notifications.status_notifier import SERVICE_REQUEST, VIOLATION, StatusChangeNotifier, WorkflowKind
from propalert.utils.paths import PathMismatchError, canonical_path, match_any
from propalert.workflow.denormalize import DenormalizationReconciler

router = APIRouter(dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)

RECIPIENT_NOTIFICATION_PATHS = (
  "organizations/{organizationId}/properties/{propertyId}/residents/{residentId}/notifications/{notificationId}",
  "organizations/{organizationId}/users/{userId}/notifications/{notificationId}",
  "userProfiles/{userId}/notifications/{notificationId}",
  "notifications/{notificationId}",
)
PROPERTY_NOTIFICATION_PATHS = ("organizations/{organizationId}/properties/{propertyId}/notifications/{notificationId}",)
SERVICE_REQUEST_PATHS = ("organizations/{organizationId}/services/{serviceId}",)
VIOLATION_PATHS = ("organizations/{organizationId}/violations/{violationId}",)
RESIDENT_PATHS = ("organizations/{organizationId}/properties/{propertyId}/residents/{residentId}",)

ContextDep = Annotated[HandlerContext, Depends(get_handler_context)]


def _bind(templates: tuple[str, ...], event: DocumentEvent) -> tuple[str, dict[str, str]]:
  """Match the event path and return it in canonical form with its bindings."""
  try:
    params = match_any(templates, event.document)
  except PathMismatchError as exc:
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
  return canonical_path(event.document), params


def _created_data(event: DocumentEvent) -> dict:
  if event.after is None:
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Create events require an after state.")
  return event.after


@router.post("/notifications/created", status_code=status.HTTP_200_OK)
async def notification_created(event: DocumentEvent, context: ContextDep) -> HandlerResponse:
  path, params = _bind(RECIPIENT_NOTIFICATION_PATHS, event)
  outcome = await Dispatcher(context).handle_created(path=path, data=_created_data(event), params=params)
  return HandlerResponse(status=outcome.value)


@router.post("/property-notifications/created", status_code=status.HTTP_200_OK)
async def property_notification_created(event: DocumentEvent, context: ContextDep) -> HandlerResponse:
  path, params = _bind(PROPERTY_NOTIFICATION_PATHS, event)
  outcome = await BroadcastDispatcher(context).handle_created(path=path, data=_created_data(event), params=params)
  return HandlerResponse(status=outcome.value)


async def _workflow_updated(kind: WorkflowKind, templates: tuple[str, ...], event: DocumentEvent, context: HandlerContext) -> HandlerResponse:
  path, params = _bind(templates, event)
  outcome = await StatusChangeNotifier(context).handle_update(kind, path=path, params=params, before=event.before, after=event.after)
  return HandlerResponse(status=outcome.value)


@router.post("/service-requests/updated", status_code=status.HTTP_200_OK)
async def service_request_updated(event: DocumentEvent, context: ContextDep) -> HandlerResponse:
  return await _workflow_updated(SERVICE_REQUEST, SERVICE_REQUEST_PATHS, event, context)


@router.post("/violations/updated", status_code=status.HTTP_200_OK)
async def violation_updated(event: DocumentEvent, context: ContextDep) -> HandlerResponse:
  return await _workflow_updated(VIOLATION, VIOLATION_PATHS, event, context)


@router.post("/residents/written", status_code=status.HTTP_200_OK)
async def resident_written(event: DocumentEvent, context: ContextDep) -> HandlerResponse:
  path, _ = _bind(RESIDENT_PATHS, event)
  outcome = await DenormalizationReconciler(context).handle_write(path=path, after=event.after)
  return HandlerResponse(status=outcome.value)
