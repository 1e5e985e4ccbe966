"""Request and response models for the HTTP surface."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

ROLE_RESIDENT = "resident"
ROLE_ADMIN = "admin"


class DocumentEvent(BaseModel):
  """A document write observed by the event source."""

  document: str = Field(min_length=1, max_length=1500)
  before: dict[str, Any] | None = None
  after: dict[str, Any] | None = None
  model_config = ConfigDict(extra="ignore")


class HandlerResponse(BaseModel):
  status: str


class SweepResponse(BaseModel):
  rule: str
  organizations: int
  escalated: int
  notifications: int
  failed_organizations: list[str]


class TokenRegistrationRequest(BaseModel):
  """Device token registration for the authenticated caller."""

  fcm_token: str = Field(alias="fcmToken", min_length=1, max_length=4096)
  role: str = Field(min_length=1, max_length=64)
  organization_id: str | None = Field(default=None, alias="organizationId", max_length=256)
  property_id: str | None = Field(default=None, alias="propertyId", max_length=256)
  model_config = ConfigDict(extra="forbid", populate_by_name=True)

  @field_validator("fcm_token", "role")
  @classmethod
  def strip_required(cls, value: str) -> str:
    normalized = value.strip()
    if not normalized:
      raise PydanticCustomError("blank", "value must not be blank.")
    return normalized

  @model_validator(mode="after")
  def check_scope_fields(self) -> TokenRegistrationRequest:
    if self.role == ROLE_ADMIN:
      return self
    if not self.organization_id:
      raise PydanticCustomError("organization_required", "organizationId is required for this role.")
    if self.role == ROLE_RESIDENT and not self.property_id:
      raise PydanticCustomError("property_required", "propertyId is required for resident role.")
    return self
