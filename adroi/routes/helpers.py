import math
from datetime import date
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse

from adroi.core.templates import templates
from adroi.errors import ValidationError


def redirect(url: str, toast: str | None = None) -> RedirectResponse:
    if toast:
        url = f"{url}{'&' if '?' in url else '?'}{urlencode({'toast': toast})}"
    return RedirectResponse(url=url, status_code=303)


def confirmed(value: str | None) -> bool:
    return (value or "").strip().lower() == "yes"


def confirmation_page(request: Request, *, title: str, message: str, action: str, cancel_url: str, fields: dict | None = None, danger: bool = True):
    return templates.TemplateResponse(
        request,
        "confirm.html",
        {
            "title": title,
            "message": message,
            "action": action,
            "cancel_url": cancel_url,
            "fields": fields or {},
            "danger": danger,
        },
    )


# SQLite INTEGER is a signed 64-bit value
MAX_INT = 2**63 - 1


def parse_float(raw: str | None, label: str) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw.strip().replace(",", "."))
    except ValueError as exc:
        raise ValidationError(f"{label} must be a number", toast="invalid-number") from exc
    if not math.isfinite(value):
        raise ValidationError(f"{label} must be a finite number", toast="invalid-number")
    return value


def parse_int(raw: str | None, label: str) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValidationError(f"{label} must be a whole number", toast="invalid-number") from exc
    if abs(value) > MAX_INT:
        raise ValidationError(f"{label} is too large", toast="invalid-number")
    return value


def parse_date(raw: str | None, label: str = "Date") -> date | None:
    if raw is None or not raw.strip():
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise ValidationError(f"{label} must be YYYY-MM-DD", toast="invalid-date") from exc
