import time

from fastapi import Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from adroi.core.config import get_settings

settings = get_settings()
serializer = URLSafeTimedSerializer(settings.secret_key, salt="session")


def set_session(response: Response, user_id: int) -> None:
    signed = serializer.dumps({"user_id": user_id})
    response.set_cookie(
        settings.session_cookie,
        signed,
        max_age=settings.session_max_age,
        httponly=True,
        secure=False,
        samesite="lax",
    )


def clear_session(response: Response) -> None:
    response.delete_cookie(settings.session_cookie)


def _load(request: Request) -> tuple[int, float] | None:
    raw = request.cookies.get(settings.session_cookie)
    if not raw:
        return None
    try:
        payload, signed_at = serializer.loads(raw, max_age=settings.session_max_age, return_timestamp=True)
        return int(payload.get("user_id")), signed_at.timestamp()
    except (BadSignature, SignatureExpired, TypeError, ValueError):
        return None


def read_session(request: Request) -> int | None:
    loaded = _load(request)
    return loaded[0] if loaded else None


def needs_refresh(request: Request, now: float | None = None) -> int | None:
    """Return the user id when the session cookie is valid but due for re-signing."""
    loaded = _load(request)
    if not loaded:
        return None
    user_id, signed_at = loaded
    current = time.time() if now is None else now
    if current - signed_at >= settings.session_refresh_after:
        return user_id
    return None
