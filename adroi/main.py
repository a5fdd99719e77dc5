from urllib.parse import urlsplit

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from adroi.core.config import get_settings
from adroi.core.logging import configure_logging, get_logger
from adroi.core.session import needs_refresh, set_session
from adroi.core.templates import STATIC_DIR, templates
from adroi.errors import AdRoiError, NotFoundError, PermissionDeniedError
from adroi.routes import admin, auth, clients, dashboard, public, reports, settings, tasks
from adroi.routes.helpers import redirect

configure_logging()
log = get_logger("app")

app = FastAPI(title=get_settings().app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def refresh_session_cookie(request: Request, call_next):
    response = await call_next(request)
    user_id = needs_refresh(request)
    cookie = get_settings().session_cookie
    already_set = any(h.startswith(f"{cookie}=") for h in response.headers.getlist("set-cookie"))
    if user_id and not already_set:
        set_session(response, user_id)
    return response


def _wants_json(request: Request) -> bool:
    return request.url.path.startswith("/api/") or "application/json" in request.headers.get("accept", "")


def _back_url(request: Request) -> str:
    referer = request.headers.get("referer")
    if referer:
        parts = urlsplit(referer)
        return parts.path or "/"
    return "/"


@app.exception_handler(AdRoiError)
async def handle_app_error(request: Request, exc: AdRoiError):
    log.info("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    if _wants_json(request):
        return JSONResponse({"detail": exc.message, "kind": exc.kind}, status_code=exc.status_code)
    if request.method == "GET" or isinstance(exc, (NotFoundError, PermissionDeniedError)):
        return templates.TemplateResponse(
            request,
            "error.html",
            {"message": exc.message, "kind": exc.kind, "retry_url": str(request.url) if request.method == "GET" else None},
            status_code=exc.status_code,
        )
    return redirect(_back_url(request), exc.toast)


app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(clients.router)
app.include_router(tasks.router)
app.include_router(reports.router)
app.include_router(settings.router)
app.include_router(admin.router)
app.include_router(public.router)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
