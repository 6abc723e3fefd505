"""HTTP client for the registry server.

Implements both the patient record service and the session boundary over
HTTP. Every failure, whether a transport problem or an error response, is
normalized into a ``RegistryError`` before it leaves this module.
"""

import os
from dataclasses import dataclass, field
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter

from app.models.errors import ErrorKind, RegistryError
from app.models.patient import PATIENT_TABLE, Patient, PatientData, PatientUpdate
from app.models.session import SessionResponse, UserAccount
from app.utils.logging import get_logger

logger = get_logger(__name__)

KIND_BY_STATUS = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.UNAUTHORIZED,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.DUPLICATE_KEY,
    422: ErrorKind.VALIDATION,
}

PYDANTIC_VALUE_ERROR_PREFIX = "Value error, "

T = TypeVar("T")

PATIENT = TypeAdapter(Patient)
PATIENT_LIST = TypeAdapter(list[Patient])
ACCOUNT = TypeAdapter(UserAccount)
SESSION = TypeAdapter(SessionResponse)


@dataclass
class RegistryClientConfig:
    """Configuration for the registry HTTP client."""

    base_url: str = field(default_factory=lambda: os.getenv("REGISTRY_API_URL", "http://localhost:8000"))
    timeout: float = field(default_factory=lambda: float(os.getenv("REGISTRY_API_TIMEOUT", "10")))


def normalize_error(response: httpx.Response) -> RegistryError:
    """Map an error response onto a RegistryError."""
    kind = KIND_BY_STATUS.get(response.status_code, ErrorKind.TRANSPORT)
    message = response.reason_phrase or f"HTTP {response.status_code}"

    try:
        body: Any = response.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else response.text or None

    if isinstance(detail, dict):
        if detail.get("kind") in list(ErrorKind):
            kind = ErrorKind(detail["kind"])
        message = detail.get("message") or message
    elif isinstance(detail, list) and detail:
        # Request validation errors: report the first failing field
        first = detail[0]
        message = str(first.get("msg", message)) if isinstance(first, dict) else str(first)
        message = message.removeprefix(PYDANTIC_VALUE_ERROR_PREFIX)
    elif isinstance(detail, str) and detail:
        message = detail

    return RegistryError(kind, message)


class RegistryClient:
    """Async registry client bound to at most one signed-in session."""

    def __init__(
        self,
        config: RegistryClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize registry client.

        Args:
            config: Client configuration
            transport: Optional transport, e.g. an ASGI transport in tests
        """
        self.config = config or RegistryClientConfig()
        self.http = httpx.AsyncClient(base_url=self.config.base_url, timeout=self.config.timeout, transport=transport)
        self.session: SessionResponse | None = None

    @property
    def user_id(self) -> str | None:
        return self.session.user.id if self.session else None

    @property
    def user(self) -> UserAccount | None:
        return self.session.user if self.session else None

    async def health(self) -> bool:
        """Check that the server answers its health endpoint."""
        try:
            await self._request("GET", "/health", authenticated=False)
        except RegistryError:
            return False
        return True

    async def sign_up(self, email: str, password: str, full_name: str) -> UserAccount:
        return await self._request_model(
            ACCOUNT,
            "POST",
            "/auth/signup",
            json={"email": email, "password": password, "full_name": full_name},
            authenticated=False,
        )

    async def sign_in(self, email: str, password: str) -> SessionResponse:
        self.session = await self._request_model(
            SESSION, "POST", "/auth/signin", json={"email": email, "password": password}, authenticated=False
        )
        logger.info(f"Signed in as user {self.session.user.id}")
        return self.session

    async def sign_out(self) -> None:
        if self.session is None:
            return
        try:
            await self._request("POST", "/auth/signout")
        finally:
            self.session = None

    async def list_patients(self) -> list[Patient]:
        return await self._request_model(PATIENT_LIST, "GET", f"/{PATIENT_TABLE}")

    async def create_patient(self, owner_id: str, data: PatientData) -> Patient:
        payload = {**data.model_dump(by_alias=True, mode="json"), "user_id": owner_id}
        return await self._request_model(PATIENT, "POST", f"/{PATIENT_TABLE}", json=payload)

    async def update_patient(self, data: PatientUpdate) -> Patient:
        payload = data.model_dump(by_alias=True, mode="json", exclude={"id"})
        return await self._request_model(PATIENT, "PUT", f"/{PATIENT_TABLE}/{data.id}", json=payload)

    async def delete_patient(self, patient_id: str) -> None:
        await self._request("DELETE", f"/{PATIENT_TABLE}/{patient_id}")

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request_model(self, schema: TypeAdapter[T], method: str, url: str, **kwargs: Any) -> T:
        """Send a request and parse a successful body with schema."""
        response = await self._request(method, url, **kwargs)
        try:
            return schema.validate_json(response.content)
        except ValueError as e:
            logger.error(f"{method} {url} returned an unreadable body: {e}")
            raise RegistryError(
                ErrorKind.TRANSPORT, f"Unexpected response from the registry (HTTP {response.status_code})"
            ) from e

    async def _request(self, method: str, url: str, authenticated: bool = True, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", {}))
        if authenticated:
            if self.session is None:
                raise RegistryError(ErrorKind.UNAUTHORIZED, "Not signed in")
            headers["Authorization"] = f"Bearer {self.session.access_token}"

        try:
            response = await self.http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e!r}")
            raise RegistryError(ErrorKind.TRANSPORT, str(e) or e.__class__.__name__) from e

        if response.is_error:
            error = normalize_error(response)
            logger.warning(f"{method} {url} returned {response.status_code} ({error.kind}): {error.message}")
            raise error

        return response
