"""Routes for device token registration."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Response, status

from propalert.api.models import ROLE_ADMIN, ROLE_RESIDENT, TokenRegistrationRequest
from propalert.core.context import HandlerContext
from propalert.core.security import get_current_claims, get_handler_context
from propalert.notifications.scopes import AdminScope, OrgUserScope, RecipientScope, ResidentScope
from propalert.notifications.token_registry import TokenRegistry
from propalert.storage.contracts import DocumentNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)


def scope_for_registration(uid: str, payload: TokenRegistrationRequest) -> RecipientScope:
  if payload.role == ROLE_ADMIN:
    return AdminScope(user_id=uid)
  if not payload.organization_id:
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="organizationId is required for this role.")
  if payload.role == ROLE_RESIDENT:
    if not payload.property_id:
      raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="propertyId is required for resident role.")
    return ResidentScope(organization_id=payload.organization_id, property_id=payload.property_id, resident_id=uid)
  return OrgUserScope(organization_id=payload.organization_id, user_id=uid)


@router.post("/tokens", status_code=status.HTTP_204_NO_CONTENT)
async def register_token(
  payload: TokenRegistrationRequest, claims: Annotated[dict[str, Any], Depends(get_current_claims)], context: Annotated[HandlerContext, Depends(get_handler_context)]
) -> Response:
  """Add the caller's device token to their recipient profile."""
  scope = scope_for_registration(str(claims["uid"]), payload)
  try:
    await TokenRegistry(context.store).register_token(scope, payload.fcm_token)
  except DocumentNotFoundError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient profile not found.") from exc
  except Exception as exc:  # noqa: BLE001
    logger.error("Failed to register push token uid=%s role=%s: %s", claims.get("uid"), payload.role, exc, exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to register push token.") from exc

  return Response(status_code=status.HTTP_204_NO_CONTENT)
