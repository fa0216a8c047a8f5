"""FastAPI application entry point for the SOP library."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.ClientManager import ClientManager
from shared.errors.exceptions import (
    ConsistencyError,
    DuplicateNameError,
    InputValidationError,
    InvalidFileTypeError,
    NotReadyError,
    RecordInvalidError,
    RemoteIOError,
    SOPLibraryError,
)
from services.session.SessionService import SessionService
from services.sop_library.SOPLibraryRegistry import SOPLibraryRegistry
from services.sop_library.SOPRepository import SOPRepository
from server.models.responses import ErrorResponse
from server.routers.LibraryRouter import router as library_router
from server.routers.QuizRouter import router as quiz_router
from server.routers.UploadRouter import router as upload_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    store_client = ClientManager(helper_config=app.state.helper_config, client_type="store").get_client()
    blob_client = ClientManager(helper_config=app.state.helper_config, client_type="blob").get_client()
    identity_client = ClientManager(helper_config=app.state.helper_config, client_type="identity").get_client()
    clients = [store_client, blob_client, identity_client]

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.")

    app.state.store_client = store_client
    app.state.blob_client = blob_client
    app.state.identity_client = identity_client

    app.state.repository = SOPRepository(helper_config=app.state.helper_config, store_client=store_client)
    app.state.library_registry = SOPLibraryRegistry(
        helper_config=app.state.helper_config,
        repository=app.state.repository,
        blob_client=blob_client,
    )
    app.state.session_service = SessionService(
        helper_config=app.state.helper_config,
        identity_client=identity_client,
        store_client=store_client,
    )

    await check_connections(clients)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="sop_library",
    description=(
        "SOP library of a vivarium organization: categories, folders and SOP documents. "
        "Read the library via GET /library, upload PDFs via POST /documents "
        "and take the built-in knowledge checks via /quizzes."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(library_router)
app.include_router(upload_router)
app.include_router(quiz_router)


def get_status_code(error: SOPLibraryError) -> int:
    """Map a library error to the HTTP status it is answered with."""
    if isinstance(error, (NotReadyError, DuplicateNameError)):
        return 409
    if isinstance(error, InvalidFileTypeError):
        return 415
    if isinstance(error, InputValidationError):
        return 422
    if isinstance(error, RecordInvalidError):
        return 404
    if isinstance(error, ConsistencyError):
        return 409
    if isinstance(error, RemoteIOError):
        return 502
    return 500


@app.exception_handler(SOPLibraryError)
async def handle_library_error(request: Request, error: SOPLibraryError) -> JSONResponse:
    status_code = get_status_code(error)
    if status_code >= 500:
        logging.error("%s %s failed: %s", request.method, request.url.path, error.message)
    else:
        logging.info("%s %s rejected: %s", request.method, request.url.path, error.message)
    body = ErrorResponse(error=type(error).__name__, detail=error.message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def check_connections(clients: list[ClientInterface]) -> None:
    """Check connectivity to all configured backends on startup.

    Every backend is required: the library cannot be read without the store,
    nothing can be uploaded or deleted without the blob store, and no caller can
    be identified without the identity provider.

    Raises:
        RemoteIOError: If a backend is not reachable.
    """
    for client in clients:
        try:
            await client.do_healthcheck()
        except RemoteIOError as e:
            logging.error("%s client '%s' is not reachable: %s", client.get_client_type(), client.get_engine_name(), e.message)
            raise
        logging.info("%s client '%s' is reachable.", client.get_client_type(), client.get_engine_name())


# Server Start
if __name__ == "__main__":
    import uvicorn
    logging.info(f"Starting SOP library API server v{app_version} from root dir: {os.getenv('ROOT_DIR', os.getcwd())} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
