from __future__ import annotations

import logging
import secrets
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, Request, status

from propalert.config import Settings, get_settings
from propalert.core.context import HandlerContext
from propalert.core.firebase import verify_id_token

logger = logging.getLogger(__name__)


async def require_task_secret(
  request: Request, settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None), x_propalert_task_secret: str | None = Header(default=None)
) -> None:
  """Guard internal event and schedule endpoints with the shared task secret."""
  # Secure-by-default: without a configured secret nothing may invoke the handlers.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  # Cloud Run OIDC occupies Authorization, so the dedicated header is checked first.
  shared_secret_valid = secrets.compare_digest(x_propalert_task_secret or "", settings.task_secret)
  bearer_valid = secrets.compare_digest(authorization or "", f"Bearer {settings.task_secret}")
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to %s", request.url.path)
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")


def get_handler_context(request: Request) -> HandlerContext:
  context = getattr(request.app.state, "context", None)
  if context is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Notification handlers are not configured.")
  return context


async def get_current_claims(authorization: str | None = Header(default=None)) -> dict[str, Any]:
  """Verify the caller's Firebase ID token and return its claims."""
  if not authorization or not authorization.lower().startswith("bearer "):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token.")

  claims = verify_id_token(authorization[len("bearer ") :].strip())
  if not claims or not claims.get("uid"):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid bearer token.")
  return claims
