"""Tests for the terminal client's rendering and command handling."""

from datetime import UTC, date, datetime

import pytest
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from registry_cli import RegistryCLI, auth_error_notice, render_patient_table

from app.models.errors import ErrorKind, RegistryError
from app.models.patient import Patient


def make_patient(patient_id: str, full_name: str, tax_id: str) -> Patient:
    return Patient(
        id=patient_id,
        full_name=full_name,
        birth_date=date(1980, 1, 31),
        tax_id=tax_id,
        registered_at=datetime(2025, 1, 1, tzinfo=UTC),
    )


@pytest.fixture
def cli():
    cli = RegistryCLI("http://testserver")
    cli.console = Console(record=True, width=120)
    cli.store.patients = [
        make_patient("p1", "Maria da Silva", "111.222.333-44"),
        make_patient("p2", "João Pereira", "555.666.777-88"),
    ]
    return cli


class TestRenderPatientTable:
    """Tests for the patient table."""

    def test_rows_and_dates(self):
        table = render_patient_table([make_patient("p1", "Maria da Silva", "111.222.333-44")])
        assert isinstance(table, Table)

        console = Console(record=True, width=120)
        console.print(table)
        output = console.export_text()
        assert "Patients (1)" in output
        assert "Maria da Silva" in output
        assert "31/01/1980" in output

    def test_empty_state(self):
        panel = render_patient_table([])
        assert isinstance(panel, Panel)

        console = Console(record=True, width=80)
        console.print(panel)
        assert "No patients found" in console.export_text()


class TestCommands:
    """Tests for command dispatch that stays local."""

    def test_pick_by_row_number(self, cli):
        assert cli._pick("2").id == "p2"

    @pytest.mark.parametrize("argument", ["", "0", "3", "-1", "abc"])
    def test_pick_out_of_range(self, cli, argument):
        assert cli._pick(argument) is None
        assert "Pick a row number between 1 and 2" in cli.console.export_text()

    @pytest.mark.asyncio
    async def test_search_filters_view(self, cli):
        assert await cli._dispatch("/search joão") is True
        assert [p.id for p in cli.screen.visible_patients] == ["p2"]
        assert cli._pick("1").id == "p2"

    @pytest.mark.asyncio
    async def test_unknown_command(self, cli):
        assert await cli._dispatch("/frobnicate") is True
        assert "Unknown command: /frobnicate" in cli.console.export_text()

    @pytest.mark.asyncio
    async def test_quit(self, cli):
        assert await cli._dispatch("/quit") is False


class TestAuthErrorNotice:
    """Tests for the messages shown when signing in or up fails."""

    def test_invalid_credentials_are_reworded(self):
        error = RegistryError(ErrorKind.UNAUTHORIZED, "Invalid login credentials")
        assert auth_error_notice(error, signing_up=False) == ("Error signing in", "Incorrect email or password")

    def test_already_registered_is_reworded(self):
        error = RegistryError(ErrorKind.DUPLICATE_KEY, "User already registered")
        assert auth_error_notice(error, signing_up=True) == ("Error", "This email is already registered")

    def test_other_errors_pass_through(self):
        error = RegistryError(ErrorKind.TRANSPORT, "connection refused")
        assert auth_error_notice(error, signing_up=False) == ("Error signing in", "connection refused")
        assert auth_error_notice(error, signing_up=True) == ("Error creating account", "connection refused")
