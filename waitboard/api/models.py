"""Pydantic request models for the Hospital Wait Board API."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from ..algorithms.waiting_list import STAFF_DELTAS


class _HospitalFields(BaseModel):
    postal_code: str | None = Field(
        None,
        max_length=20,
        description="Postal code, matched exactly by postal-code search",
    )
    latitude: float | None = Field(None, ge=-90, le=90, description="WGS84 latitude")
    longitude: float | None = Field(None, ge=-180, le=180, description="WGS84 longitude")
    contact_phone: str | None = Field(None, max_length=50)
    contact_email: str | None = Field(None, max_length=255)

    @field_validator("postal_code", "contact_phone", "contact_email")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @model_validator(mode="after")
    def _coordinates_come_in_pairs(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


class HospitalCreateRequest(_HospitalFields):
    name: str = Field(..., min_length=1, max_length=255, description="Hospital name")
    address: str = Field(..., min_length=1, description="Full street address")

    @field_validator("name", "address")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class HospitalUpdateRequest(_HospitalFields):
    name: str | None = Field(None, min_length=1, max_length=255)
    address: str | None = Field(None, min_length=1)

    @field_validator("name", "address")
    @classmethod
    def _not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def _coordinates_change_together(self):
        # Stored coordinates are a pair, so an edit sets or clears both.
        if ("latitude" in self.model_fields_set) != ("longitude" in self.model_fields_set):
            raise ValueError("latitude and longitude must be updated together")
        return self


class WaitingCountAdjustRequest(BaseModel):
    delta: int = Field(
        ...,
        description="Staff adjustment: +1 adds a patient, -1 removes one",
    )

    @field_validator("delta")
    @classmethod
    def _staff_delta(cls, value: int) -> int:
        if value not in STAFF_DELTAS:
            raise ValueError(f"delta must be one of {list(STAFF_DELTAS)}")
        return value


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1, max_length=128)


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
