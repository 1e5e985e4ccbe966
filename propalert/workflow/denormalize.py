"""Keep the flat ``vehicleLicensePlates`` index in sync with ``vehicles``."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from propalert.core.context import HandlerContext, Outcome

logger = logging.getLogger(__name__)

SOURCE_FIELD = "vehicles"
DERIVED_FIELD = "vehicleLicensePlates"


def project_license_plates(vehicles: Any) -> list[str]:
  """Plates of the vehicle list, in order, skipping entries without one."""
  if not isinstance(vehicles, list):
    return []
  plates = []
  for vehicle in vehicles:
    if isinstance(vehicle, Mapping) and vehicle.get("plate"):
      plates.append(vehicle["plate"])
  return plates


def needs_reconciliation(source: Any, derived: Any) -> bool:
  """True when the stored index differs from the projection of the source list.

  The reconciler's own write re-triggers it; this check is what ends the loop.
  """
  current = derived if isinstance(derived, list) else []
  return project_license_plates(source) != current


class DenormalizationReconciler:
  def __init__(self, context: HandlerContext) -> None:
    self._context = context

  async def handle_write(self, *, path: str, after: dict[str, Any] | None) -> Outcome:
    """Entry point for any resident write. Never raises."""
    if after is None:
      return Outcome.SKIPPED

    try:
      if not needs_reconciliation(after.get(SOURCE_FIELD), after.get(DERIVED_FIELD)):
        logger.debug("License plates already in sync for %s", path)
        return Outcome.SKIPPED

      plates = project_license_plates(after.get(SOURCE_FIELD))
      await self._context.store.update(path, {DERIVED_FIELD: plates})
      logger.info("Updated license plates for %s (%d plate(s))", path, len(plates))
      return Outcome.UPDATED
    except Exception as exc:  # noqa: BLE001
      logger.error("License plate reconciliation failed path=%s error=%s", path, exc, exc_info=True)
      return Outcome.ERROR
