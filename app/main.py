"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.api.endpoints import router
from app.services.records import InMemoryPatientTable
from app.services.session_manager import InMemorySessionManager


def create_app(
    session_manager: InMemorySessionManager | None = None,
    patient_table: InMemoryPatientTable | None = None,
) -> FastAPI:
    """Build the registry application around its account and patient stores."""
    application = FastAPI(
        title="Patient Registry",
        description=(
            "Patient registration service. Signed-in users create, list, update "
            "and delete their own patient records."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "Auth",
                "description": "Account sign-up, sign-in and sign-out.",
            },
            {
                "name": "Patients",
                "description": (
                    "Patient records. Every operation is restricted to records owned by the signed-in user."
                ),
            },
            {
                "name": "Health",
                "description": "Service health monitoring and status checks.",
            },
        ],
    )

    application.state.session_manager = session_manager or InMemorySessionManager()
    application.state.patient_table = patient_table or InMemoryPatientTable()

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from app.utils.logging import setup_logging

    setup_logging()
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
