"""Patient form state for create and edit dialogs."""

from collections.abc import Awaitable, Callable
from datetime import date
from enum import StrEnum

from app.models.patient import Patient, PatientData, PatientUpdate
from app.utils.logging import get_logger
from app.utils.validation import PATIENT_VALIDATORS, format_field, validate_patient_fields

logger = get_logger(__name__)

FORM_FIELDS = tuple(PATIENT_VALIDATORS)

SubmitHandler = Callable[[PatientData], Awaitable[bool]]


class FormMode(StrEnum):
    """Whether the form creates a new patient or edits an existing one."""

    CREATE = "create"
    EDIT = "edit"


def empty_values() -> dict[str, str]:
    return dict.fromkeys(FORM_FIELDS, "")


def values_from_patient(patient: Patient) -> dict[str, str]:
    """Pre-populate form values; optional fields become empty strings."""
    return {
        "full_name": patient.full_name,
        "birth_date": patient.birth_date.isoformat(),
        "tax_id": patient.tax_id,
        "phone": patient.phone or "",
        "address": patient.address or "",
    }


class PatientFormController:
    """Working values of one patient form.

    The controller never talks to the store. On submit it validates, builds
    the payload and hands it to ``on_submit``; the handler's return value is
    the acknowledgement that closes the form.
    """

    def __init__(self, title: str, on_submit: SubmitHandler):
        self.title = title
        self.on_submit = on_submit
        self.is_open = False
        self.patient: Patient | None = None
        self.values = empty_values()
        self.errors: dict[str, str] = {}

    @property
    def mode(self) -> FormMode:
        return FormMode.EDIT if self.patient else FormMode.CREATE

    @property
    def error_message(self) -> str | None:
        """The first failing field's message, in form order."""
        return next(iter(self.errors.values()), None)

    def open(self, patient: Patient | None = None) -> None:
        """Open empty for create, or pre-populated from patient for edit."""
        self.patient = patient
        self.values = values_from_patient(patient) if patient else empty_values()
        self.errors = {}
        self.is_open = True

    def set_field(self, field: str, raw_value: str) -> str:
        """Store a keystroke-level value, canonicalized by the field formatter.

        Returns:
            The value as it should now be displayed
        """
        if field not in self.values:
            raise KeyError(f"Unknown patient field: {field}")
        self.values[field] = format_field(field, raw_value)
        self.errors.pop(field, None)
        return self.values[field]

    def validate(self) -> bool:
        self.errors = validate_patient_fields(self.values)
        return not self.errors

    def build_payload(self) -> PatientData:
        """Build the submission payload from already validated values."""
        data = PatientData(
            full_name=self.values["full_name"],
            birth_date=date.fromisoformat(self.values["birth_date"].strip()),
            tax_id=self.values["tax_id"],
            phone=self.values["phone"],
            address=self.values["address"],
        )
        if self.patient:
            return PatientUpdate(**data.model_dump(), id=self.patient.id)
        return data

    async def submit(self) -> bool:
        """Validate and emit the payload.

        Returns:
            True once the handler acknowledged the submission and the form
            has been cleared and closed
        """
        if not self.is_open:
            return False

        if not self.validate():
            logger.info(f"{self.title}: submission blocked, {len(self.errors)} invalid field(s)")
            return False

        acknowledged = await self.on_submit(self.build_payload())
        if acknowledged:
            self.reset()
        return acknowledged

    def cancel(self) -> None:
        """Discard the working values and close without emitting."""
        self.reset()

    def reset(self) -> None:
        self.is_open = False
        self.patient = None
        self.values = empty_values()
        self.errors = {}
