"""Recipient scopes and the document paths they resolve to.

A notification record lives under the profile of the recipient it addresses, so
the path a record was created under identifies both the recipient profile and
the record collection. Three recipient shapes share the ``fcmTokens`` field:

* admins: ``userProfiles/{userId}``
* organization users (managers, staff): ``organizations/{organizationId}/users/{userId}``
* residents: ``organizations/{organizationId}/properties/{propertyId}/residents/{residentId}``

Property broadcasts live under ``organizations/{organizationId}/properties/{propertyId}``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from propalert.notifications.contracts import RecipientResolutionError

NOTIFICATIONS_COLLECTION = "notifications"


@dataclass(frozen=True)
class AdminScope:
  user_id: str


@dataclass(frozen=True)
class OrgUserScope:
  organization_id: str
  user_id: str


@dataclass(frozen=True)
class ResidentScope:
  organization_id: str
  property_id: str
  resident_id: str


RecipientScope = AdminScope | OrgUserScope | ResidentScope


@dataclass(frozen=True)
class PropertyScope:
  organization_id: str
  property_id: str

  @property
  def path(self) -> str:
    return f"organizations/{self.organization_id}/properties/{self.property_id}"

  @property
  def residents_path(self) -> str:
    return f"{self.path}/residents"

  def resident(self, resident_id: str) -> ResidentScope:
    return ResidentScope(organization_id=self.organization_id, property_id=self.property_id, resident_id=resident_id)


def resolve_path(scope: RecipientScope) -> str:
  """Return the profile document path of a recipient."""
  match scope:
    case AdminScope(user_id=user_id):
      return f"userProfiles/{user_id}"
    case OrgUserScope(organization_id=organization_id, user_id=user_id):
      return f"organizations/{organization_id}/users/{user_id}"
    case ResidentScope(organization_id=organization_id, property_id=property_id, resident_id=resident_id):
      return f"organizations/{organization_id}/properties/{property_id}/residents/{resident_id}"
  raise TypeError(f"Unsupported recipient scope: {scope!r}")


def notifications_path(scope: RecipientScope) -> str:
  """Return the notification collection owned by a recipient."""
  return f"{resolve_path(scope)}/{NOTIFICATIONS_COLLECTION}"


def scope_from_event_params(params: Mapping[str, str | None]) -> RecipientScope:
  """Build a recipient scope from trigger path bindings.

  The most specific shape wins: a resident binding needs organization and
  property ids, an organization user needs an organization id, and a bare
  ``userId`` addresses an admin profile.
  """
  organization_id = params.get("organizationId")
  property_id = params.get("propertyId")
  resident_id = params.get("residentId")
  user_id = params.get("userId")

  if resident_id:
    if not organization_id or not property_id:
      raise RecipientResolutionError("Resident scope requires organizationId and propertyId.")
    return ResidentScope(organization_id=organization_id, property_id=property_id, resident_id=resident_id)

  if user_id and organization_id:
    return OrgUserScope(organization_id=organization_id, user_id=user_id)

  if user_id:
    return AdminScope(user_id=user_id)

  raise RecipientResolutionError(f"Event parameters do not identify a recipient: {sorted(k for k, v in params.items() if v)}")


def describe_scope(scope: RecipientScope | PropertyScope) -> str:
  """Short identifier for log lines."""
  match scope:
    case AdminScope(user_id=user_id):
      return f"admin:{user_id}"
    case OrgUserScope(organization_id=organization_id, user_id=user_id):
      return f"org_user:{organization_id}/{user_id}"
    case ResidentScope(organization_id=organization_id, property_id=property_id, resident_id=resident_id):
      return f"resident:{organization_id}/{property_id}/{resident_id}"
    case PropertyScope(organization_id=organization_id, property_id=property_id):
      return f"property:{organization_id}/{property_id}"
  return repr(scope)
