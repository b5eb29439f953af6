"""
Documentation UI (`/docs`) and OpenAPI document (`/openapi.json`).

When SWAGGER_USER / SWAGGER_PASS are configured both routes require a
session created through `/docs/login`; otherwise they are served openly.
"""

from __future__ import annotations

import html
import logging
import secrets

from fastapi import APIRouter, Form, Request
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.responses import Response

from revenue_api.core.errors import ErrorCode
from revenue_api.core.http import error_json

from .sessions import DocsSessionStore

logger = logging.getLogger(__name__)

SESSION_COOKIE = "docs_session"
DOCS_PATH = "/docs"
LOGIN_PATH = "/docs/login"
OPENAPI_PATH = "/openapi.json"

router = APIRouter(include_in_schema=False)

_LOGIN_PAGE = """<!doctype html>
<html lang="pt-BR">
<head>
  <meta charset="utf-8">
  <title>Documentação - Login</title>
  <style>
    body {{ font-family: sans-serif; display: flex; justify-content: center; margin-top: 10vh; }}
    form {{ display: flex; flex-direction: column; gap: .5rem; width: 18rem; }}
    .error {{ color: #b00020; }}
  </style>
</head>
<body>
  <form method="post" action="{action}">
    <h1>Documentação</h1>
    {error}
    <label>Usuário <input name="username" autocomplete="username" required></label>
    <label>Senha <input name="password" type="password" autocomplete="current-password" required></label>
    <button type="submit">Entrar</button>
  </form>
</body>
</html>
"""


def _store(request: Request) -> DocsSessionStore:
    return request.app.state.docs_sessions


def _credentials(request: Request) -> tuple[str, str] | None:
    return request.app.state.docs_credentials


def _has_session(request: Request) -> bool:
    if _credentials(request) is None:
        return True
    return _store(request).is_valid(request.cookies.get(SESSION_COOKIE))


def _login_page(error: str | None = None, status_code: int = 200) -> HTMLResponse:
    error_html = f'<p class="error">{html.escape(error)}</p>' if error else ""
    return HTMLResponse(_LOGIN_PAGE.format(action=LOGIN_PATH, error=error_html), status_code=status_code)


@router.get(LOGIN_PATH)
async def login_form(request: Request) -> Response:
    if _credentials(request) is None or _has_session(request):
        return RedirectResponse(DOCS_PATH, status_code=302)
    return _login_page()


@router.post(LOGIN_PATH)
async def login(
    request: Request,
    username: str = Form(default=""),
    password: str = Form(default=""),
) -> Response:
    credentials = _credentials(request)
    if credentials is None:
        return RedirectResponse(DOCS_PATH, status_code=302)

    expected_user, expected_password = credentials
    user_ok = secrets.compare_digest(username.encode("utf-8"), expected_user.encode("utf-8"))
    password_ok = secrets.compare_digest(password.encode("utf-8"), expected_password.encode("utf-8"))
    if not (user_ok and password_ok):
        logger.warning("docs_login_failed username=%s", username)
        return _login_page("Usuário ou senha inválidos", status_code=401)

    store = _store(request)
    token = store.create()
    response = RedirectResponse(DOCS_PATH, status_code=302)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=store.ttl_seconds,
        path="/",
        httponly=True,
        samesite="lax",
    )
    return response


@router.post("/docs/logout")
async def logout(request: Request) -> Response:
    _store(request).revoke(request.cookies.get(SESSION_COOKIE))
    response = RedirectResponse(LOGIN_PATH, status_code=302)
    response.delete_cookie(SESSION_COOKIE, path="/")
    return response


@router.get(DOCS_PATH)
async def docs_ui(request: Request) -> Response:
    if not _has_session(request):
        return RedirectResponse(LOGIN_PATH, status_code=302)
    return get_swagger_ui_html(openapi_url=OPENAPI_PATH, title=f"{request.app.title} - Docs")


@router.get(OPENAPI_PATH)
async def openapi_document(request: Request) -> Response:
    if not _has_session(request):
        message = "Sessão de documentação inválida ou expirada"
        return error_json(401, message, [{"code": ErrorCode.DOCS_UNAUTHORIZED, "message": message}])
    return JSONResponse(request.app.openapi())
