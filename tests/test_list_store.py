"""Tests for the patient list store."""

from unittest.mock import AsyncMock

import pytest

from app.models.errors import ErrorKind, RegistryError
from app.models.patient import PatientUpdate
from app.services.list_store import PatientListStore
from app.services.notifications import NotificationVariant, Notifier
from app.services.records import InMemoryPatientRecordService, InMemoryPatientTable


class FakeSession:
    """Session boundary stand-in."""

    def __init__(self, user_id: str | None = "user-a"):
        self.user_id = user_id
        self.sign_out = AsyncMock(side_effect=self._sign_out)

    async def _sign_out(self) -> None:
        self.user_id = None


@pytest.fixture
def table():
    return InMemoryPatientTable()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def store(table, notifier):
    return PatientListStore(InMemoryPatientRecordService(table, "user-a"), FakeSession(), notifier)


def failing_records(error: RegistryError) -> AsyncMock:
    records = AsyncMock()
    for method in ("list_patients", "create_patient", "update_patient", "delete_patient"):
        getattr(records, method).side_effect = error
    return records


class TestLoad:
    """Tests for loading the collection."""

    @pytest.mark.asyncio
    async def test_activate_waits_for_identity(self, table, notifier):
        records = AsyncMock()
        store = PatientListStore(records, FakeSession(user_id=None), notifier)

        assert await store.activate() is False

        records.list_patients.assert_not_awaited()
        assert store.is_loading is True

    @pytest.mark.asyncio
    async def test_activate_loads(self, store):
        assert await store.activate() is True
        assert store.patients == []
        assert store.is_loading is False

    @pytest.mark.asyncio
    async def test_failed_load_keeps_previous_collection(self, store, notifier, patient_data):
        await store.create(patient_data())
        previous = list(store.patients)
        notifier.drain()

        store.records = failing_records(RegistryError(ErrorKind.TRANSPORT, "connection refused"))
        assert await store.load() is False

        assert store.patients == previous
        [notification] = notifier.drain()
        assert notification.variant == NotificationVariant.DESTRUCTIVE
        assert "connection refused" in notification.description


class TestMutations:
    """Tests for create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_attaches_owner_and_reloads(self, store, table, notifier, patient_data):
        assert await store.create(patient_data()) is True

        assert len(store.patients) == 1
        [row] = table.rows.values()
        assert row["user_id"] == "user-a"
        assert notifier.drain()[0].title == "Success"

    @pytest.mark.asyncio
    async def test_create_without_identity_fails(self, table, notifier, patient_data):
        store = PatientListStore(InMemoryPatientRecordService(table, "user-a"), FakeSession(None), notifier)
        assert await store.create(patient_data()) is False
        assert table.rows == {}
        assert notifier.drain()[0].variant == NotificationVariant.DESTRUCTIVE

    @pytest.mark.asyncio
    async def test_no_optimistic_update(self, notifier, patient_data):
        """Test a successful mutation only shows up through the reload."""
        records = AsyncMock()
        records.list_patients.return_value = []
        store = PatientListStore(records, FakeSession(), notifier)

        assert await store.create(patient_data()) is True

        records.create_patient.assert_awaited_once()
        assert records.create_patient.await_args.args[0] == "user-a"
        records.list_patients.assert_awaited_once()
        assert store.patients == []

    @pytest.mark.asyncio
    async def test_duplicate_tax_id(self, store, notifier, patient_data):
        await store.create(patient_data(tax_id="111.222.333-44"))
        first = store.patients[0]
        notifier.drain()

        assert await store.create(patient_data(full_name="Other", tax_id="111.222.333-44")) is False

        assert store.patients == [first]
        [notification] = notifier.drain()
        assert notification.title == "Error"
        assert "duplicate key" in notification.description

    @pytest.mark.asyncio
    async def test_update_reloads(self, store, patient_data):
        await store.create(patient_data())
        patient = store.patients[0]

        update = PatientUpdate(**patient_data(full_name="Maria Souza").model_dump(), id=patient.id)
        assert await store.update(update) is True

        assert store.patients[0].full_name == "Maria Souza"
        assert store.patients[0].id == patient.id

    @pytest.mark.asyncio
    async def test_update_requires_id(self, store, patient_data):
        with pytest.raises(TypeError):
            await store.update(patient_data())

    @pytest.mark.asyncio
    async def test_failed_update_leaves_collection(self, store, notifier, patient_data):
        await store.create(patient_data())
        before = list(store.patients)

        update = PatientUpdate(**patient_data().model_dump(), id="missing")
        assert await store.update(update) is False
        assert store.patients == before
        assert "not found" in notifier.drain()[-1].description

    @pytest.mark.asyncio
    async def test_delete_reloads(self, store, patient_data):
        await store.create(patient_data())
        assert await store.delete(store.patients[0].id) is True
        assert store.patients == []

    @pytest.mark.asyncio
    async def test_delete_unknown_id_leaves_others(self, store, patient_data):
        await store.create(patient_data())
        kept = store.patients[0]

        assert await store.delete("missing") is False
        await store.load()
        assert store.patients == [kept]


class TestFilter:
    """Tests for the derived search view."""

    @pytest.mark.asyncio
    async def test_empty_term_returns_everything_in_order(self, store, patient_data):
        await store.create(patient_data(full_name="Maria da Silva", tax_id="111.222.333-44"))
        await store.create(patient_data(full_name="João Pereira", tax_id="555.666.777-88"))
        assert store.filter("") == store.patients
        assert [p.full_name for p in store.filter("")] == ["João Pereira", "Maria da Silva"]

    @pytest.mark.asyncio
    async def test_name_match_is_case_insensitive(self, store, patient_data):
        await store.create(patient_data(full_name="Maria da Silva", tax_id="111.222.333-44"))
        await store.create(patient_data(full_name="João Pereira", tax_id="555.666.777-88"))
        assert [p.full_name for p in store.filter("MARIA")] == ["Maria da Silva"]
        assert [p.full_name for p in store.filter("pereira")] == ["João Pereira"]

    @pytest.mark.asyncio
    async def test_tax_id_match_is_literal(self, store, patient_data):
        await store.create(patient_data(full_name="Maria da Silva", tax_id="111.222.333-44"))
        assert len(store.filter("222.333")) == 1
        assert store.filter("222333") == []

    @pytest.mark.asyncio
    async def test_filter_does_not_mutate(self, store, patient_data):
        await store.create(patient_data())
        before = list(store.patients)
        store.filter("nobody")
        assert store.patients == before


class TestSignOut:
    """Tests for leaving the session."""

    @pytest.mark.asyncio
    async def test_sign_out_drops_cache(self, store, patient_data):
        await store.create(patient_data())
        assert await store.sign_out() is True
        store.session.sign_out.assert_awaited_once()
        assert store.patients == []
        assert store.session.user_id is None
