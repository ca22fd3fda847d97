"""
HTTP surface for the reconciliation service.

Provides endpoints for:
- /users: Register a user
- /clients: Exchange email/password for a client session key
- /file-actions: Decode, compact and apply a batch of file actions
- /file-actions/preview: Files a batch would leave behind, storage untouched
- /files: Current file index of the session's owner
"""

from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple

from fastapi import FastAPI, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from loguru import logger

from ..exceptions import (
    BoxSyncError,
    MalformedInput,
    AuthenticationError,
    ConflictError,
    MissingTargetError,
    HashMismatchError,
    DuplicateAccountError,
    StorageError,
)
from ..models.data_models import User, Client
from ..services.sync_service import SyncService


# Status code per error class; the first matching entry wins
ERROR_STATUS = [
    (MalformedInput, 400),
    (AuthenticationError, 401),
    (ConflictError, 409),
    (MissingTargetError, 409),
    (HashMismatchError, 409),
    (DuplicateAccountError, 409),
    (StorageError, 500),
]


class Credentials(BaseModel):
    email: str
    password: str


class FileActionBatch(BaseModel):
    file_actions: List[str]


class UserResponse(BaseModel):
    id: int
    email: str


class ClientResponse(BaseModel):
    client_id: int
    user_id: int
    session_key: str


def get_sync_service(request: Request) -> SyncService:
    return request.app.state.sync_service


def get_session(
    x_session_key: Optional[str] = Header(None),
    sync_service: SyncService = Depends(get_sync_service)
) -> Tuple[User, Client]:
    """Resolve the X-Session-Key header to the calling user and client."""
    if not x_session_key:
        raise AuthenticationError("Missing session key")
    return sync_service.account_service.authenticate_client(x_session_key)


def error_status(exc: BoxSyncError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return 500


def create_app(sync_service: SyncService) -> FastAPI:
    """
    Build the FastAPI application around a sync service.

    Args:
        sync_service: Service used by every endpoint

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="boxsync",
        description="Reconciles client file-action batches against a persisted file index",
        version="1.0.0"
    )
    app.state.sync_service = sync_service

    @app.exception_handler(BoxSyncError)
    async def handle_sync_error(request: Request, exc: BoxSyncError) -> JSONResponse:
        status_code = error_status(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
            detail = "Internal server error"
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
            detail = str(exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": detail, "error": type(exc).__name__}
        )

    @app.get("/")
    def root() -> Dict[str, Any]:
        """Health check endpoint."""
        return {"message": "boxsync is running", "timestamp": datetime.now()}

    @app.post("/users", status_code=201)
    def register_user(
        credentials: Credentials,
        service: SyncService = Depends(get_sync_service)
    ) -> UserResponse:
        """Register a new user."""
        try:
            user = service.account_service.create_user(credentials.email, credentials.password)
        except ValueError as e:
            raise MalformedInput(str(e)) from e
        return UserResponse(id=user.id, email=user.email)

    @app.post("/clients", status_code=201)
    def create_client(
        credentials: Credentials,
        service: SyncService = Depends(get_sync_service)
    ) -> ClientResponse:
        """Check credentials and issue a new client session key."""
        user = service.account_service.validate_user_password(credentials.email, credentials.password)
        client = service.account_service.create_client(user)
        return ClientResponse(client_id=client.id, user_id=user.id, session_key=client.session_key)

    @app.post("/file-actions")
    def sync_file_actions(
        batch: FileActionBatch,
        session: Tuple[User, Client] = Depends(get_session),
        service: SyncService = Depends(get_sync_service)
    ) -> Dict[str, Any]:
        """
        Reconcile a batch of file actions against the caller's file index.

        The batch is applied atomically; any integrity failure rejects the
        whole batch with 409 and leaves the index untouched.
        """
        _, client = session
        return service.sync_file_actions(batch.file_actions, client)

    @app.post("/file-actions/preview")
    def preview_file_actions(
        batch: FileActionBatch,
        session: Tuple[User, Client] = Depends(get_session),
        service: SyncService = Depends(get_sync_service)
    ) -> Dict[str, Any]:
        """Return the files a batch would leave behind without applying it."""
        _, client = session
        files = service.preview_files(batch.file_actions, client)
        return {"files": [file.to_dict() for file in files], "total_count": len(files)}

    @app.get("/files")
    def list_files(
        session: Tuple[User, Client] = Depends(get_session),
        service: SyncService = Depends(get_sync_service)
    ) -> Dict[str, Any]:
        """Return the caller's current file index."""
        user, _ = session
        files = service.get_files(user)
        return {"files": [file.to_dict() for file in files], "total_count": len(files)}

    return app
