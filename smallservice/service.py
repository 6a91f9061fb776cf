"""HTTP API exposing the in-memory user registry."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .models import User, UserValidationError
from .storage import RegistryFullError, Storage, UserNotFoundError

logger = logging.getLogger("smallservice.service")

DEMO_USERS = (
    ("Alice", "alice@example.com"),
    ("Bob", "bob@example.com"),
)

_ALLOWED_USERS_METHODS = "GET, POST"


class UserView(BaseModel):
    id: str
    created_at: datetime
    name: str
    email: str


class UserListResponse(BaseModel):
    users: List[UserView]
    total: int


class CreateUserRequest(BaseModel):
    # Missing keys decode to empty strings and are rejected by validation.
    name: str = ""
    email: str = ""


def _user_to_view(user: User) -> UserView:
    return UserView(
        id=user.id,
        created_at=user.created_at,
        name=user.name,
        email=user.email,
    )


def _encode_users(users: List[User]) -> Dict[str, Any]:
    response = UserListResponse(
        users=[_user_to_view(user) for user in users],
        total=len(users),
    )
    return response.model_dump(mode="json")


async def _plain_text_http_error(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


def seed_demo_users(storage: Storage, users: Iterable[tuple[str, str]] = DEMO_USERS) -> List[User]:
    """Populate ``storage`` with a couple of example accounts."""

    created = [storage.create(name, email) for name, email in users]
    logger.info("Seeded %d demo user(s)", len(created))
    return created


def register_user_routes(app: FastAPI, storage: Storage) -> None:
    """Expose the registry endpoints on the provided FastAPI application.

    Registry calls run on the worker thread pool, one thread per request;
    the registry does its own locking.
    """

    @app.get("/healthz")
    def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/users")
    def list_users() -> JSONResponse:
        users = storage.list()
        try:
            payload = _encode_users(users)
        except (TypeError, ValueError) as exc:
            logger.exception("Error encoding users")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error",
            ) from exc
        return JSONResponse(payload)

    @app.post("/users", status_code=status.HTTP_201_CREATED, response_model=UserView)
    async def create_user(request: Request) -> UserView:
        # Decode the body as JSON whatever Content-Type the client sent.
        body = await request.body()
        try:
            payload = CreateUserRequest.model_validate_json(body)
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="invalid request body",
            ) from exc

        try:
            user = await run_in_threadpool(storage.create, payload.name, payload.email)
        except UserValidationError as exc:
            logger.debug("Rejected user creation: %s", exc)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except RegistryFullError as exc:
            logger.warning("User limit of %d reached; rejecting creation", exc.limit)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

        logger.info("Created user %s", user.id)
        return _user_to_view(user)

    @app.api_route(
        "/users",
        methods=["PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
        include_in_schema=False,
    )
    def users_method_not_allowed() -> None:
        raise HTTPException(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            detail="Method not allowed",
            headers={"Allow": _ALLOWED_USERS_METHODS},
        )

    @app.get("/users/{user_id}", response_model=UserView)
    def get_user(user_id: str) -> UserView:
        try:
            user = storage.get_by_id(user_id)
        except UserNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return _user_to_view(user)


def create_app(
    *,
    storage: Storage | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the user registry."""

    app_settings = settings or Settings()
    app_storage = storage or Storage(max_users=app_settings.max_users)

    app = FastAPI(
        title="Small Service User Registry",
        version="0.1.0",
        description="In-memory registry of users exposed over JSON.",
    )
    app.state.settings = app_settings
    app.state.storage = app_storage

    app.add_exception_handler(StarletteHTTPException, _plain_text_http_error)

    register_user_routes(app, app_storage)

    return app


__all__ = ["DEMO_USERS", "create_app", "register_user_routes", "seed_demo_users"]
