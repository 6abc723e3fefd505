"""Shared fixtures for registry tests."""

from datetime import date

import pytest

from app.models.patient import PatientData


@pytest.fixture
def patient_data():
    """Factory for valid patient payloads."""

    def _make(**overrides) -> PatientData:
        fields = {
            "full_name": "Maria da Silva",
            "birth_date": date(1980, 1, 31),
            "tax_id": "111.222.333-44",
            "phone": "(11) 98765-4321",
            "address": "Rua das Flores, 123 - São Paulo/SP",
        }
        fields.update(overrides)
        return PatientData(**fields)

    return _make
