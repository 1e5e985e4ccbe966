import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from propalert.config import get_settings
from propalert.core.logging import initialize_logging
from propalert.notifications.factory import build_handler_context


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and build the handler context once per process."""
  settings = get_settings()
  logger = logging.getLogger("propalert.core.lifespan")

  try:
    initialize_logging(settings)
  except RuntimeError:
    # Keep serving with stdout logging when the log directory is not writable.
    logging.basicConfig(level=logging.INFO)
    logger.warning("File logging unavailable; continuing with stdout only.", exc_info=True)

  # Tests may install their own context before startup.
  if getattr(app.state, "context", None) is None:
    app.state.context = build_handler_context(settings)
  logger.info("Startup complete environment=%s handlers_enabled=%s", settings.environment, app.state.context is not None)

  yield
