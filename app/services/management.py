"""Patient management screen: the list, its forms and the delete dialog."""

from app.models.patient import Patient
from app.services.confirmation import ConfirmationGate
from app.services.forms import PatientFormController
from app.services.list_store import PatientListStore
from app.services.notifications import Notifier


class PatientManagement:
    """State behind the patient management screen.

    Owns the search term, the create and edit forms and the delete
    confirmation gate. The record collection itself belongs to the injected
    ``PatientListStore``; everything here only requests mutations from it.
    """

    def __init__(self, store: PatientListStore, notifier: Notifier):
        self.store = store
        self.notifier = notifier
        self.search_term = ""
        self.create_form = PatientFormController("Register New Patient", store.create)
        self.edit_form = PatientFormController("Edit Patient", store.update)
        self.delete_gate = ConfirmationGate()

    @property
    def visible_patients(self) -> list[Patient]:
        return self.store.filter(self.search_term)

    async def start(self) -> bool:
        return await self.store.activate()

    def search(self, term: str) -> list[Patient]:
        self.search_term = term
        return self.visible_patients

    def open_create(self) -> PatientFormController:
        self.create_form.open()
        return self.create_form

    def open_edit(self, patient: Patient) -> PatientFormController:
        self.edit_form.open(patient)
        return self.edit_form

    async def submit_create(self) -> bool:
        return await self._submit(self.create_form)

    async def submit_edit(self) -> bool:
        return await self._submit(self.edit_form)

    def request_delete(self, patient: Patient) -> None:
        self.delete_gate.stage(patient)

    def cancel_delete(self) -> None:
        self.delete_gate.cancel()

    async def confirm_delete(self) -> bool:
        return await self.delete_gate.confirm(self.store.delete)

    async def sign_out(self) -> bool:
        self.create_form.cancel()
        self.edit_form.cancel()
        self.delete_gate.cancel()
        self.search_term = ""
        return await self.store.sign_out()

    async def _submit(self, form: PatientFormController) -> bool:
        submitted = await form.submit()
        if not submitted and form.error_message:
            self.notifier.error("Validation error", form.error_message)
        return submitted
