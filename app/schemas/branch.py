"""Schémas Succursale / Library branch schemas."""

from pydantic import BaseModel, ConfigDict, field_validator


class BranchBase(BaseModel):
    name: str
    address: str = ""
    manager_id: str | None = None

    @field_validator("name", "address")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()


class BranchCreate(BranchBase):
    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Branch name is required")
        return value


class BranchUpdate(BaseModel):
    name: str | None = None
    address: str | None = None
    manager_id: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str | None) -> str:
        # Champ facultatif, mais jamais vidé / Optional, but never cleared
        if value is None or not value.strip():
            raise ValueError("Branch name is required")
        return value.strip()

    @field_validator("address")
    @classmethod
    def address_text(cls, value: str | None) -> str:
        return (value or "").strip()


class BranchRead(BranchBase):
    model_config = ConfigDict(from_attributes=True)
    id: int
