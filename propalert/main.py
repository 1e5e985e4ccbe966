from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from propalert.api.routes import events, push, schedules
from propalert.core.exceptions import global_exception_handler, request_validation_exception_handler
from propalert.core.lifespan import lifespan

app = FastAPI(title="propalert", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(events.router, prefix="/events", tags=["events"])
app.include_router(schedules.router, prefix="/schedules", tags=["schedules"])
app.include_router(push.router, prefix="/v1/push", tags=["push"])
