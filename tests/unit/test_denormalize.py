from __future__ import annotations

import pytest

from propalert.core.context import Outcome
from propalert.workflow.denormalize import DenormalizationReconciler, needs_reconciliation, project_license_plates

RESIDENT = "organizations/org-1/properties/prop-1/residents/res-1"


def test_projection_keeps_order_and_skips_missing_plates():
  vehicles = [{"plate": "AAA111", "make": "Honda"}, {"make": "Bike"}, {"plate": "BBB222"}, "junk"]

  assert project_license_plates(vehicles) == ["AAA111", "BBB222"]
  assert project_license_plates(None) == []


def test_needs_reconciliation_compares_against_stored_index():
  vehicles = [{"plate": "AAA111"}]

  assert needs_reconciliation(vehicles, None)
  assert needs_reconciliation(vehicles, ["OLD"])
  assert not needs_reconciliation(vehicles, ["AAA111"])
  assert not needs_reconciliation([], None)


@pytest.mark.anyio
async def test_out_of_sync_index_is_rewritten(context, store):
  store.documents[RESIDENT] = {"vehicles": [{"plate": "AAA111"}, {"plate": "BBB222"}], "vehicleLicensePlates": ["AAA111"], "name": "Res"}

  outcome = await DenormalizationReconciler(context).handle_write(path=RESIDENT, after=dict(store.documents[RESIDENT]))

  assert outcome is Outcome.UPDATED
  assert store.writes == [("update", RESIDENT, {"vehicleLicensePlates": ["AAA111", "BBB222"]})]
  assert store.documents[RESIDENT]["name"] == "Res"


@pytest.mark.anyio
async def test_reconciler_converges_after_its_own_write(context, store):
  store.documents[RESIDENT] = {"vehicles": [{"plate": "AAA111"}]}
  reconciler = DenormalizationReconciler(context)

  first = await reconciler.handle_write(path=RESIDENT, after=dict(store.documents[RESIDENT]))
  # The write above triggers another event carrying the updated document.
  second = await reconciler.handle_write(path=RESIDENT, after=dict(store.documents[RESIDENT]))

  assert first is Outcome.UPDATED
  assert second is Outcome.SKIPPED
  assert len(store.writes) == 1


@pytest.mark.anyio
async def test_deleted_resident_is_ignored(context, store):
  outcome = await DenormalizationReconciler(context).handle_write(path=RESIDENT, after=None)

  assert outcome is Outcome.SKIPPED
  assert store.writes == []


@pytest.mark.anyio
async def test_write_failure_is_reported(context, store):
  outcome = await DenormalizationReconciler(context).handle_write(path=RESIDENT, after={"vehicles": [{"plate": "AAA111"}]})

  assert outcome is Outcome.ERROR


@pytest.mark.anyio
async def test_unrelated_field_change_does_not_rewrite_index(context, store):
  store.documents[RESIDENT] = {"vehicles": [{"plate": "X"}], "vehicleLicensePlates": ["X"], "phone": "555-0100"}

  outcome = await DenormalizationReconciler(context).handle_write(path=RESIDENT, after={**store.documents[RESIDENT], "phone": "555-0199"})

  assert outcome is Outcome.SKIPPED
  assert [write for write in store.writes if "vehicleLicensePlates" in write[2]] == []
