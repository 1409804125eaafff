"""Pydantic schemas for the action-dispatch endpoint and its payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActionRequest(BaseModel):
    action: str
    payload: dict[str, Any] = Field(default_factory=dict)


class EmptyPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UpdateProfilePayload(BaseModel):
    display_name: str = Field(min_length=1, max_length=50)


class RecruitKnightPayload(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    tier: int = Field(ge=1, le=4)


class TreasuryTransferPayload(BaseModel):
    resource: str
    amount: int


class SetDoctrinePayload(BaseModel):
    category: str
    doctrine: str


class AddTaxPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tax_amount: int = Field(alias="taxAmount", strict=True)


class LaunchRaidPayload(BaseModel):
    # Presence is checked by the raid service so the error names both fields
    defender_id: int | None = None
    knight_ids: list[str] = Field(default_factory=list)
