"""API endpoints for the patient registry service."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app import __version__
from app.models.api import HealthResponse
from app.models.errors import ErrorKind, RegistryError
from app.models.patient import PATIENT_TABLE, Patient, PatientData, PatientInsert, PatientUpdate
from app.models.session import Session, SessionResponse, SignInRequest, SignUpRequest, UserAccount
from app.services.records import InMemoryPatientTable
from app.services.session_manager import InMemorySessionManager
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.DUPLICATE_KEY: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
}


def to_http_exception(error: RegistryError) -> HTTPException:
    """Convert a registry error into the HTTP error the client normalizes back."""
    return HTTPException(status_code=STATUS_BY_KIND[error.kind], detail=error.as_detail())


async def get_session_manager(request: Request) -> InMemorySessionManager:
    return request.app.state.session_manager


async def get_patient_table(request: Request) -> InMemoryPatientTable:
    return request.app.state.patient_table


async def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session_manager: InMemorySessionManager = Depends(get_session_manager),
) -> Session:
    """Resolve the bearer token to a live session."""
    if credentials is None:
        raise to_http_exception(RegistryError(ErrorKind.UNAUTHORIZED, "Missing bearer token"))

    session = session_manager.get_session(credentials.credentials)
    if not session:
        logger.warning("Rejected request with an unknown or expired token")
        raise to_http_exception(RegistryError(ErrorKind.UNAUTHORIZED, "Invalid or expired session"))
    return session


@router.post("/auth/signup", response_model=UserAccount, status_code=status.HTTP_201_CREATED, tags=["Auth"])
async def sign_up(
    payload: SignUpRequest,
    session_manager: InMemorySessionManager = Depends(get_session_manager),
) -> UserAccount:
    """Create an account with a display name."""
    try:
        return session_manager.sign_up(payload.email, payload.password, payload.full_name)
    except RegistryError as e:
        raise to_http_exception(e) from e


@router.post("/auth/signin", response_model=SessionResponse, tags=["Auth"])
async def sign_in(
    payload: SignInRequest,
    session_manager: InMemorySessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """Exchange credentials for an access token."""
    try:
        session = session_manager.sign_in(payload.email, payload.password)
    except RegistryError as e:
        raise to_http_exception(e) from e

    account = session_manager.get_account(session.user_id)
    return SessionResponse(access_token=session.access_token, user=account)


@router.post("/auth/signout", status_code=status.HTTP_204_NO_CONTENT, response_class=Response, tags=["Auth"])
async def sign_out(
    session: Session = Depends(get_current_session),
    session_manager: InMemorySessionManager = Depends(get_session_manager),
) -> Response:
    """End the current session."""
    session_manager.sign_out(session.access_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/auth/session", response_model=SessionResponse, tags=["Auth"])
async def current_session(
    session: Session = Depends(get_current_session),
    session_manager: InMemorySessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """Return the session the bearer token belongs to."""
    account = session_manager.get_account(session.user_id)
    return SessionResponse(access_token=session.access_token, user=account)


@router.get(f"/{PATIENT_TABLE}", response_model=list[Patient], tags=["Patients"])
async def list_patients(
    session: Session = Depends(get_current_session),
    table: InMemoryPatientTable = Depends(get_patient_table),
) -> list[Patient]:
    """List the caller's patients, most recently registered first."""
    return table.select(session.user_id)


@router.post(f"/{PATIENT_TABLE}", response_model=Patient, status_code=status.HTTP_201_CREATED, tags=["Patients"])
async def create_patient(
    payload: PatientInsert,
    session: Session = Depends(get_current_session),
    table: InMemoryPatientTable = Depends(get_patient_table),
) -> Patient:
    """Register a patient owned by the caller."""
    try:
        return table.insert(session.user_id, payload)
    except RegistryError as e:
        raise to_http_exception(e) from e


@router.put(f"/{PATIENT_TABLE}/{{patient_id}}", response_model=Patient, tags=["Patients"])
async def update_patient(
    patient_id: str,
    payload: PatientData,
    session: Session = Depends(get_current_session),
    table: InMemoryPatientTable = Depends(get_patient_table),
) -> Patient:
    """Replace every editable field of one of the caller's patients."""
    try:
        return table.update(session.user_id, PatientUpdate(**payload.model_dump(), id=patient_id))
    except RegistryError as e:
        raise to_http_exception(e) from e


@router.delete(
    f"/{PATIENT_TABLE}/{{patient_id}}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["Patients"],
)
async def delete_patient(
    patient_id: str,
    session: Session = Depends(get_current_session),
    table: InMemoryPatientTable = Depends(get_patient_table),
) -> Response:
    """Delete one of the caller's patients."""
    try:
        table.delete(session.user_id, patient_id)
    except RegistryError as e:
        raise to_http_exception(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
