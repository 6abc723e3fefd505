"""Owned, reload-after-mutation store for the signed-in user's patients."""

from typing import Protocol

from app.models.errors import RegistryError
from app.models.patient import Patient, PatientData, PatientUpdate
from app.services.notifications import Notifier
from app.services.records import PatientRecordService
from app.utils.logging import get_logger

logger = get_logger(__name__)


class SessionBoundary(Protocol):
    """The parts of the session provider the store depends on."""

    @property
    def user_id(self) -> str | None:
        """Id of the signed-in user, or None when signed out."""
        ...

    async def sign_out(self) -> None:
        """End the current session."""
        ...


class PatientListStore:
    """Single source of truth for the visible patient collection.

    Mutations never patch the local collection. Each successful create,
    update or delete is followed by a full ``load()``, so the list only ever
    shows what the remote store has confirmed. Remote failures are reported
    through the notifier and leave local state as it was.
    """

    def __init__(self, records: PatientRecordService, session: SessionBoundary, notifier: Notifier):
        self.records = records
        self.session = session
        self.notifier = notifier
        self.patients: list[Patient] = []
        self.is_loading = True

    async def activate(self) -> bool:
        """Run the initial load once a session identity is present."""
        if self.session.user_id is None:
            logger.info("No session identity yet, skipping initial load")
            return False
        return await self.load()

    async def load(self) -> bool:
        """Replace the collection with the caller's patients, newest first."""
        try:
            patients = await self.records.list_patients()
        except RegistryError as e:
            logger.error(f"Error loading patients ({e.kind}): {e.message}")
            self.notifier.error("Error", f"Could not load patients: {e.message}")
            return False
        finally:
            self.is_loading = False

        self.patients = patients
        logger.debug(f"Loaded {len(patients)} patients")
        return True

    async def create(self, payload: PatientData) -> bool:
        """Insert a patient owned by the signed-in user, then reload."""
        owner_id = self.session.user_id
        if owner_id is None:
            self.notifier.error("Error", "Could not register the patient: not signed in.")
            return False

        try:
            await self.records.create_patient(owner_id, payload)
        except RegistryError as e:
            logger.error(f"Error creating patient ({e.kind}): {e.message}")
            self.notifier.error("Error", f"Could not register the patient: {e.message}")
            return False

        self.notifier.success("Success", "Patient registered successfully!")
        await self.load()
        return True

    async def update(self, payload: PatientData) -> bool:
        """Send a full-field update keyed by payload.id, then reload."""
        if not isinstance(payload, PatientUpdate):
            raise TypeError("update() requires a PatientUpdate payload carrying the patient id")

        try:
            await self.records.update_patient(payload)
        except RegistryError as e:
            logger.error(f"Error updating patient {payload.id} ({e.kind}): {e.message}")
            self.notifier.error("Error", f"Could not update the patient: {e.message}")
            return False

        self.notifier.success("Success", "Patient updated successfully!")
        await self.load()
        return True

    async def delete(self, patient_id: str) -> bool:
        """Delete a patient by id, then reload."""
        try:
            await self.records.delete_patient(patient_id)
        except RegistryError as e:
            logger.error(f"Error deleting patient {patient_id} ({e.kind}): {e.message}")
            self.notifier.error("Error", f"Could not delete the patient: {e.message}")
            return False

        self.notifier.success("Success", "Patient deleted successfully!")
        await self.load()
        return True

    def filter(self, search_term: str) -> list[Patient]:
        """Patients whose name contains the term (any case) or whose CPF contains it verbatim."""
        needle = search_term.lower()
        return [
            patient
            for patient in self.patients
            if needle in patient.full_name.lower() or search_term in patient.tax_id
        ]

    async def sign_out(self) -> bool:
        """End the session and drop the cached collection."""
        try:
            await self.session.sign_out()
        except RegistryError as e:
            logger.error(f"Error signing out ({e.kind}): {e.message}")
            self.notifier.error("Error", f"Could not sign out: {e.message}")
            return False
        finally:
            self.patients = []
            self.is_loading = True
        return True
