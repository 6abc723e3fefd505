"""Mandatory confirmation step before a patient is deleted."""

from collections.abc import Awaitable, Callable
from enum import StrEnum

from app.models.patient import Patient
from app.utils.logging import get_logger

logger = get_logger(__name__)

DeleteHandler = Callable[[str], Awaitable[bool]]


class GateState(StrEnum):
    """States of the confirmation gate."""

    IDLE = "idle"
    PENDING = "pending"


class ConfirmationGate:
    """Holds at most one patient staged for deletion.

    The gate goes back to idle on cancel, or once the delete it issued
    succeeds. A failed delete leaves the patient staged so the user can retry.
    """

    def __init__(self):
        self.pending: Patient | None = None

    @property
    def state(self) -> GateState:
        return GateState.PENDING if self.pending else GateState.IDLE

    def stage(self, patient: Patient) -> None:
        """Stage a patient for deletion and open the confirmation dialog."""
        if self.pending is not None and self.pending.id != patient.id:
            raise ValueError(f"Patient {self.pending.id} is already staged for deletion")
        logger.info(f"Patient {patient.id} staged for deletion")
        self.pending = patient

    def cancel(self) -> None:
        """Close the dialog without deleting anything."""
        if self.pending:
            logger.info(f"Deletion of patient {self.pending.id} cancelled")
        self.pending = None

    async def confirm(self, delete: DeleteHandler) -> bool:
        """Run the delete for the staged patient.

        Args:
            delete: Coroutine taking the patient id, returning True on success

        Returns:
            True if the patient was deleted
        """
        if self.pending is None:
            return False

        patient_id = self.pending.id
        deleted = await delete(patient_id)
        if deleted and self.pending is not None and self.pending.id == patient_id:
            self.pending = None
        return deleted
