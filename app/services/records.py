"""Patient record store interface and implementations."""

import itertools
from datetime import UTC, datetime
from typing import Any, Protocol

from cuid2 import cuid_wrapper

from app.models.errors import ErrorKind, RegistryError
from app.models.patient import PATIENT_TABLE, Patient, PatientData, PatientInsert, PatientUpdate
from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

TAX_ID_UNIQUE_CONSTRAINT = f"{PATIENT_TABLE}_cpf_key"


class PatientRecordService(Protocol):
    """Interface for the authenticated remote patient store.

    Implementations act on behalf of one signed-in caller. Every operation is
    restricted to the caller's own rows.
    """

    async def list_patients(self) -> list[Patient]:
        """Get all of the caller's patients, most recently registered first."""
        ...

    async def create_patient(self, owner_id: str, data: PatientData) -> Patient:
        """Insert a patient owned by owner_id.

        Raises:
            RegistryError: duplicate_key if the CPF is already registered
        """
        ...

    async def update_patient(self, data: PatientUpdate) -> Patient:
        """Replace every client-settable field of the patient with id data.id.

        Raises:
            RegistryError: not_found if no visible patient has that id
        """
        ...

    async def delete_patient(self, patient_id: str) -> None:
        """Delete a patient by id.

        Raises:
            RegistryError: not_found if no visible patient has that id
        """
        ...


class InMemoryPatientTable:
    """In-memory ``pacientes`` table with its row-level policy.

    Rows are stored under their column names. Every operation takes the id of
    the calling user; rows owned by someone else are invisible to it. CPF
    uniqueness is global across owners.
    """

    def __init__(self):
        self.rows: dict[str, dict[str, Any]] = {}
        self._insert_order: dict[str, int] = {}
        self._sequence = itertools.count()

    def select(self, caller_id: str) -> list[Patient]:
        """Return the caller's rows ordered by data_cadastro, newest first."""
        visible = [row for row in self.rows.values() if row["user_id"] == caller_id]
        visible.sort(key=lambda row: (row["data_cadastro"], self._insert_order[row["id"]]), reverse=True)
        return [Patient.model_validate(row) for row in visible]

    def insert(self, caller_id: str, data: PatientInsert) -> Patient:
        """Insert a row; the owner must be the caller."""
        if data.owner_id != caller_id:
            logger.warning(f"Insert rejected: owner {data.owner_id} does not match caller {caller_id}")
            raise RegistryError(
                ErrorKind.UNAUTHORIZED,
                f'new row violates row-level security policy for table "{PATIENT_TABLE}"',
            )
        self._check_unique_tax_id(data.tax_id)

        row = data.to_row()
        row["id"] = cuid()
        row["data_cadastro"] = datetime.now(UTC)
        self.rows[row["id"]] = row
        self._insert_order[row["id"]] = next(self._sequence)

        logger.info(f"Inserted patient {row['id']} for user {caller_id}")
        return Patient.model_validate(row)

    def update(self, caller_id: str, data: PatientUpdate) -> Patient:
        """Overwrite the fixed field set of a row the caller owns."""
        row = self._visible_row(caller_id, data.id)
        self._check_unique_tax_id(data.tax_id, exclude_id=data.id)

        changes = data.to_row()
        for column in ("nome_completo", "data_nascimento", "cpf", "telefone", "endereco_completo"):
            row[column] = changes[column]

        logger.info(f"Updated patient {data.id} for user {caller_id}")
        return Patient.model_validate(row)

    def delete(self, caller_id: str, patient_id: str) -> None:
        """Delete a row the caller owns."""
        self._visible_row(caller_id, patient_id)
        del self.rows[patient_id]
        del self._insert_order[patient_id]
        logger.info(f"Deleted patient {patient_id} for user {caller_id}")

    def _visible_row(self, caller_id: str, patient_id: str) -> dict[str, Any]:
        row = self.rows.get(patient_id)
        if row is None or row["user_id"] != caller_id:
            raise RegistryError(ErrorKind.NOT_FOUND, f"Patient {patient_id} not found")
        return row

    def _check_unique_tax_id(self, tax_id: str, exclude_id: str | None = None) -> None:
        for row in self.rows.values():
            if row["cpf"] == tax_id and row["id"] != exclude_id:
                logger.warning(f"Duplicate CPF rejected for patient {exclude_id or '(new)'}")
                raise RegistryError(
                    ErrorKind.DUPLICATE_KEY,
                    f'duplicate key value violates unique constraint "{TAX_ID_UNIQUE_CONSTRAINT}"',
                )


class InMemoryPatientRecordService:
    """Patient record service backed directly by an in-memory table.

    Bound to one caller, the same way a remote client is bound to its
    access token.
    """

    def __init__(self, table: InMemoryPatientTable, caller_id: str):
        self.table = table
        self.caller_id = caller_id

    async def list_patients(self) -> list[Patient]:
        return self.table.select(self.caller_id)

    async def create_patient(self, owner_id: str, data: PatientData) -> Patient:
        insert = PatientInsert(**data.model_dump(), owner_id=owner_id)
        return self.table.insert(self.caller_id, insert)

    async def update_patient(self, data: PatientUpdate) -> Patient:
        return self.table.update(self.caller_id, data)

    async def delete_patient(self, patient_id: str) -> None:
        self.table.delete(self.caller_id, patient_id)
