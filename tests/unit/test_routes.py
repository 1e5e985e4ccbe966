from __future__ import annotations

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from propalert.api.models import TokenRegistrationRequest
from propalert.api.routes.push import scope_for_registration
from propalert.config import get_settings
from propalert.core.security import get_current_claims
from propalert.main import app
from tests.fakes import make_settings

SECRET_HEADERS = {"X-Propalert-Task-Secret": "task-secret"}
RESIDENT = "organizations/org-1/properties/prop-1/residents/res-1"


@pytest.fixture
def client(context, settings):
  app.state.context = context
  app.dependency_overrides[get_settings] = lambda: settings
  try:
    yield TestClient(app)
  finally:
    app.dependency_overrides.clear()
    app.state.context = None


def test_health(client):
  response = client.get("/health")

  assert response.status_code == 200
  assert response.json()["status"] == "ok"


def test_event_requires_task_secret(client):
  response = client.post("/events/residents/written", json={"document": RESIDENT, "after": {}})

  assert response.status_code == 403


def test_event_rejects_wrong_secret(client):
  response = client.post("/events/residents/written", json={"document": RESIDENT, "after": {}}, headers={"X-Propalert-Task-Secret": "nope"})

  assert response.status_code == 403


def test_unconfigured_secret_rejects_everything(client):
  app.dependency_overrides[get_settings] = lambda: make_settings(task_secret=None)

  response = client.post("/events/residents/written", json={"document": RESIDENT, "after": {}}, headers=SECRET_HEADERS)

  assert response.status_code == 403


def test_bearer_secret_is_accepted(client, store):
  store.documents[RESIDENT] = {"vehicles": []}

  response = client.post("/events/residents/written", json={"document": RESIDENT, "after": {"vehicles": []}}, headers={"Authorization": "Bearer task-secret"})

  assert response.status_code == 200
  assert response.json() == {"status": "skipped"}


def test_event_path_must_match_trigger(client):
  response = client.post("/events/violations/updated", json={"document": "organizations/org-1/services/s-1", "before": {}, "after": {}}, headers=SECRET_HEADERS)

  assert response.status_code == 422


def test_notification_created_dispatches(client, store, push):
  record = f"{RESIDENT}/notifications/n-1"
  store.documents[RESIDENT] = {"fcmTokens": ["A"]}
  store.documents[record] = {"title": "Hi", "body": "There", "status": "pending"}

  response = client.post("/events/notifications/created", json={"document": record, "after": store.documents[record]}, headers=SECRET_HEADERS)

  assert response.status_code == 200
  assert response.json() == {"status": "sent"}
  assert push.envelopes[0].tokens == ("A",)


def test_created_event_without_after_state_is_rejected(client):
  response = client.post("/events/notifications/created", json={"document": f"{RESIDENT}/notifications/n-1"}, headers=SECRET_HEADERS)

  assert response.status_code == 422


def test_resident_write_reconciles_plates(client, store):
  store.documents[RESIDENT] = {"vehicles": [{"plate": "AAA111"}]}

  response = client.post("/events/residents/written", json={"document": RESIDENT, "before": None, "after": store.documents[RESIDENT]}, headers=SECRET_HEADERS)

  assert response.json() == {"status": "updated"}
  assert store.documents[RESIDENT]["vehicleLicensePlates"] == ["AAA111"]


def test_unknown_escalation_rule(client):
  response = client.post("/schedules/escalations/sideways", headers=SECRET_HEADERS)

  assert response.status_code == 404


def test_escalation_sweep_reports_counts(client, store):
  store.documents["organizations/org-1"] = {"name": "Acme"}

  response = client.post("/schedules/escalations/unacknowledged", headers=SECRET_HEADERS)

  assert response.status_code == 200
  assert response.json() == {"rule": "unacknowledged", "organizations": 1, "escalated": 0, "notifications": 0, "failed_organizations": []}


def test_handlers_unavailable_without_context(client):
  app.state.context = None

  response = client.post("/schedules/escalations/unacknowledged", headers=SECRET_HEADERS)

  assert response.status_code == 503


def test_register_resident_token(client, store):
  store.documents[RESIDENT] = {"fcmTokens": ["A"]}
  app.dependency_overrides[get_current_claims] = lambda: {"uid": "res-1"}

  response = client.post("/v1/push/tokens", json={"fcmToken": "B", "role": "resident", "organizationId": "org-1", "propertyId": "prop-1"})

  assert response.status_code == 204
  assert store.documents[RESIDENT]["fcmTokens"] == ["A", "B"]


def test_register_admin_token(client, store):
  store.documents["userProfiles/admin-1"] = {}
  app.dependency_overrides[get_current_claims] = lambda: {"uid": "admin-1"}

  response = client.post("/v1/push/tokens", json={"fcmToken": "X", "role": "admin"})

  assert response.status_code == 204
  assert store.documents["userProfiles/admin-1"]["fcmTokens"] == ["X"]


def test_register_token_requires_scope_ids(client):
  app.dependency_overrides[get_current_claims] = lambda: {"uid": "res-1"}

  response = client.post("/v1/push/tokens", json={"fcmToken": "B", "role": "resident", "organizationId": "org-1"})

  assert response.status_code == 422


def test_register_token_for_missing_profile(client):
  app.dependency_overrides[get_current_claims] = lambda: {"uid": "mgr-1"}

  response = client.post("/v1/push/tokens", json={"fcmToken": "B", "role": "manager", "organizationId": "org-1"})

  assert response.status_code == 404


def test_register_token_requires_bearer(client):
  response = client.post("/v1/push/tokens", json={"fcmToken": "B", "role": "admin"})

  assert response.status_code == 401


def test_slash_padded_document_path_is_canonicalized(client, store):
  store.documents[RESIDENT] = {"vehicles": [{"plate": "AAA111"}]}

  response = client.post("/events/residents/written", json={"document": f"/{RESIDENT}/", "after": store.documents[RESIDENT]}, headers=SECRET_HEADERS)

  assert response.json() == {"status": "updated"}
  assert store.documents[RESIDENT]["vehicleLicensePlates"] == ["AAA111"]


def test_slash_padded_notification_path_marks_canonical_record(client, store, push):
  record = f"{RESIDENT}/notifications/n-1"
  store.documents[RESIDENT] = {"fcmTokens": ["A"]}
  store.documents[record] = {"title": "Hi", "body": "There", "status": "pending"}

  response = client.post("/events/notifications/created", json={"document": f"/{record}", "after": store.documents[record]}, headers=SECRET_HEADERS)

  assert response.json() == {"status": "sent"}
  assert store.documents[record]["status"] == "sent"


@pytest.mark.parametrize(
  "fields",
  [
    {"fcm_token": "B", "role": "manager", "organization_id": None, "property_id": None},
    {"fcm_token": "B", "role": "resident", "organization_id": "org-1", "property_id": None},
  ],
)
def test_scope_for_registration_rejects_missing_ids(fields):
  payload = TokenRegistrationRequest.model_construct(**fields)

  with pytest.raises(HTTPException) as excinfo:
    scope_for_registration("uid-1", payload)

  assert excinfo.value.status_code == 422
