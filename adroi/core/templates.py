from pathlib import Path

from fastapi.templating import Jinja2Templates

PACKAGE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def money(value) -> str:
    return f"R$ {float(value or 0):,.2f}"


def number(value) -> str:
    value = float(value or 0)
    return f"{value:,.0f}" if value.is_integer() else f"{value:,.2f}"


def toast_text(code: str | None) -> str:
    if not code:
        return ""
    return code.replace("-", " ").capitalize()


templates.env.filters["money"] = money
templates.env.filters["number"] = number
templates.env.filters["toast_text"] = toast_text
