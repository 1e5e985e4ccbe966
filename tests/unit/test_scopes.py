from __future__ import annotations

import pytest

from propalert.notifications.contracts import RecipientResolutionError
from propalert.notifications.scopes import AdminScope, OrgUserScope, PropertyScope, ResidentScope, describe_scope, notifications_path, resolve_path, scope_from_event_params
from propalert.utils.paths import PathMismatchError, canonical_path, document_id, match_any, match_path


def test_each_scope_resolves_to_its_profile_path():
  assert resolve_path(AdminScope(user_id="u1")) == "userProfiles/u1"
  assert resolve_path(OrgUserScope(organization_id="o1", user_id="u1")) == "organizations/o1/users/u1"
  assert resolve_path(ResidentScope(organization_id="o1", property_id="p1", resident_id="r1")) == "organizations/o1/properties/p1/residents/r1"
  assert notifications_path(AdminScope(user_id="u1")) == "userProfiles/u1/notifications"


def test_event_params_pick_the_most_specific_scope():
  assert scope_from_event_params({"organizationId": "o1", "propertyId": "p1", "residentId": "r1"}) == ResidentScope("o1", "p1", "r1")
  assert scope_from_event_params({"organizationId": "o1", "userId": "u1"}) == OrgUserScope("o1", "u1")
  assert scope_from_event_params({"userId": "u1"}) == AdminScope("u1")


def test_event_params_without_recipient_raise():
  with pytest.raises(RecipientResolutionError):
    scope_from_event_params({"notificationId": "n1"})
  with pytest.raises(RecipientResolutionError):
    scope_from_event_params({"residentId": "r1"})


def test_property_scope_paths():
  scope = PropertyScope(organization_id="o1", property_id="p1")

  assert scope.residents_path == "organizations/o1/properties/p1/residents"
  assert scope.resident("r1") == ResidentScope("o1", "p1", "r1")
  assert describe_scope(scope) == "property:o1/p1"


def test_match_path_binds_placeholders():
  params = match_path("organizations/{organizationId}/violations/{violationId}", "/organizations/o1/violations/v1/")

  assert params == {"organizationId": "o1", "violationId": "v1"}
  assert match_path("organizations/{organizationId}/violations/{violationId}", "organizations/o1/services/v1") is None
  assert match_path("notifications/{notificationId}", "notifications/n1/extra") is None


def test_match_any_raises_on_mismatch():
  assert match_any(("userProfiles/{userId}", "notifications/{notificationId}"), "notifications/n1") == {"notificationId": "n1"}
  with pytest.raises(PathMismatchError):
    match_any(("userProfiles/{userId}",), "organizations/o1")


def test_canonical_path_and_document_id():
  assert canonical_path("/organizations//o1/users/u1/") == "organizations/o1/users/u1"
  assert document_id("organizations/o1/users/u1") == "u1"
