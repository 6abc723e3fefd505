"""Patient data models.

Python attribute names are English; the wire and storage names follow the
``pacientes`` table and are exposed as pydantic aliases.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.utils.validation import (
    validate_address,
    validate_birth_date,
    validate_full_name,
    validate_phone,
    validate_tax_id,
)

PATIENT_TABLE = "pacientes"


def _check(message: str | None) -> None:
    if message:
        raise ValueError(message)


class Patient(BaseModel):
    """Patient record as returned by the registry."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    full_name: str = Field(alias="nome_completo")
    birth_date: date = Field(alias="data_nascimento")
    tax_id: str = Field(alias="cpf")
    phone: str = Field(default="", alias="telefone")
    address: str = Field(default="", alias="endereco_completo")
    registered_at: datetime = Field(alias="data_cadastro")

    @field_validator("phone", "address", mode="before")
    @classmethod
    def empty_when_missing(cls, v: Any) -> Any:
        """Optional columns come back as null; forms always work with strings."""
        return "" if v is None else v


class PatientData(BaseModel):
    """The fixed, client-settable field set of a patient record."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="nome_completo", examples=["Maria da Silva"])
    birth_date: date = Field(..., alias="data_nascimento", examples=["1980-01-31"])
    tax_id: str = Field(..., alias="cpf", examples=["123.456.789-01"])
    phone: str = Field(default="", alias="telefone", examples=["(11) 98765-4321"])
    address: str = Field(default="", alias="endereco_completo")

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, v: str) -> str:
        _check(validate_full_name(v))
        return v.strip()

    @field_validator("birth_date", mode="before")
    @classmethod
    def check_birth_date(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Birth date is required")
        if isinstance(v, str):
            _check(validate_birth_date(v))
            return v.strip()
        return v

    @field_validator("tax_id")
    @classmethod
    def check_tax_id(cls, v: str) -> str:
        _check(validate_tax_id(v))
        return v.strip()

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, str):
            _check(validate_phone(v))
        return v

    @field_validator("address", mode="before")
    @classmethod
    def check_address(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, str):
            _check(validate_address(v))
        return v

    def to_row(self) -> dict[str, Any]:
        """Return the storage columns, with empty optional fields as None."""
        row = self.model_dump(by_alias=True, mode="json")
        row["telefone"] = row["telefone"] or None
        row["endereco_completo"] = row["endereco_completo"] or None
        return row


class PatientInsert(PatientData):
    """Insert payload: the record fields plus the owning user."""

    owner_id: str = Field(..., alias="user_id")


class PatientUpdate(PatientData):
    """Full-field update payload keyed by the record id."""

    id: str = Field(..., min_length=1)
