"""
api/routes/v1/auth.py -- Request boundary for the Authentication Service.

Routes:
  POST /api/v1/auth/register                 -- create a user; 201 {user_id}
  POST /api/v1/auth/login                    -- verify credentials; 200 {token}
  GET  /api/v1/auth/users/{user_id}/is-admin -- admin flag; 200 {is_admin}

Shape validation (non-empty email/password, app_id >= 1, user_id >= 1)
happens in the Pydantic models and path parameters before AuthService is
called. A shape failure is a 422 from the validation handler in api/main.py.

Error mapping (AuthError.kind -> HTTP):
  login     any failure           -> 500 internal_error
            Login failures are deliberately indistinguishable to callers:
            wrong email, wrong password, unknown app and real internal
            errors all produce the same response.
  register  USER_ALREADY_EXISTS   -> 409 already_exists
  is-admin  USER_NOT_FOUND        -> 404 not_found
  any       INTERNAL              -> 500 internal_error

Deadline:
  AuthService is synchronous (bcrypt, SQLite). Each call runs in the event
  loop's default executor under asyncio.wait_for(request_timeout_seconds). A call that
  misses the deadline is reported as INTERNAL; the core never retries.

Security:
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Callable, TypeVar

from fastapi import APIRouter, HTTPException, Path, Request
from fastapi.responses import JSONResponse

from api.models import IsAdminResponse, LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from auth.errors import AuthError, ErrorKind
from auth.service import AuthService

logger = logging.getLogger("sso.api")

T = TypeVar("T")

router = APIRouter()

_INTERNAL = {"code": "internal_error", "message": "Internal error."}


async def _run(request: Request, op: str, fn: Callable[..., T], *args) -> T:
    """Run a blocking service call in the default executor under the request deadline.

    The executor future is abandoned at the deadline; the worker thread runs
    to completion on its own and its result is discarded.
    """
    timeout = request.app.state.settings.request_timeout_seconds
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(loop.run_in_executor(None, functools.partial(fn, *args)), timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.error("%s: deadline of %.1fs exceeded", op, timeout)
        raise AuthError(ErrorKind.INTERNAL, op, "deadline exceeded") from exc


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
async def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Register a new user with email and password.

    Duplicate emails are detected by the store's UNIQUE constraint, never by
    a separate lookup, so two concurrent requests cannot both succeed.
    """
    service = _service(request)
    try:
        user_id = await _run(request, "auth.register", service.register, body.email, body.password)
    except AuthError as exc:
        if exc.kind is ErrorKind.USER_ALREADY_EXISTS:
            raise HTTPException(
                status_code=409,
                detail={"code": "already_exists", "message": "User already exists."},
            ) from exc
        raise HTTPException(status_code=500, detail=_INTERNAL) from exc
    return RegisterResponse(user_id=user_id)


@router.post("/auth/login", response_model=LoginResponse)
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a token scoped to app_id.

    Every failure maps to the same generic response. AuthService has
    already logged the specific kind.
    """
    service = _service(request)
    try:
        token = await _run(request, "auth.login", service.login, body.email, body.password, body.app_id)
    except AuthError as exc:
        raise HTTPException(status_code=500, detail=_INTERNAL) from exc

    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/users/{user_id}/is-admin", response_model=IsAdminResponse)
async def is_admin(request: Request, user_id: int = Path(ge=1)) -> IsAdminResponse:
    """Return whether user_id holds the administrator flag."""
    service = _service(request)
    try:
        flag = await _run(request, "auth.is_admin", service.is_admin, user_id)
    except AuthError as exc:
        if exc.kind is ErrorKind.USER_NOT_FOUND:
            raise HTTPException(
                status_code=404,
                detail={"code": "not_found", "message": "User not found."},
            ) from exc
        raise HTTPException(status_code=500, detail=_INTERNAL) from exc
    return IsAdminResponse(is_admin=flag)
