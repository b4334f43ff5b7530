# aquaroom/utils/parsing.py
from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from ..errors import ValidationError


def utcnow() -> datetime:
    """Naive UTC now; all DateTime columns store naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def slugify(text):
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9฀-๿]+", "-", text)
    return text.strip("-")


def parse_bool(v, default=False):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_int(v, default=0):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def parse_opt_int(v):
    if v is None:
        return None
    if isinstance(v, str) and v.strip().lower() in {"", "null"}:
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def parse_opt_decimal(v, field: str):
    """Blank means "not set"; anything else must be numeric."""
    if v is None:
        return None
    if isinstance(v, bool):
        raise ValidationError(f"{field} ต้องเป็นตัวเลข", field=field)
    if isinstance(v, str):
        v = v.strip()
        if v == "" or v.lower() == "null":
            return None
    try:
        value = Decimal(str(v))
    except InvalidOperation:
        raise ValidationError(f"{field} ต้องเป็นตัวเลข", field=field)
    if not value.is_finite():
        raise ValidationError(f"{field} ต้องเป็นตัวเลข", field=field)
    return value


def require_decimal(v, field: str, message: str | None = None):
    value = parse_opt_decimal(v, field)
    if value is None:
        raise ValidationError(message or f"กรุณาระบุ {field}", field=field)
    return value


def parse_strict_int(v, field: str, message: str | None = None):
    """Integers only; "4.5", True and blanks are rejected."""
    if isinstance(v, bool) or v is None:
        raise ValidationError(message or f"{field} ต้องเป็นจำนวนเต็ม", field=field)
    if isinstance(v, float):
        if not v.is_integer():
            raise ValidationError(message or f"{field} ต้องเป็นจำนวนเต็ม", field=field)
        return int(v)
    try:
        return int(str(v).strip())
    except ValueError:
        raise ValidationError(message or f"{field} ต้องเป็นจำนวนเต็ม", field=field)


def parse_opt_strict_int(v, field: str):
    if v is None or (isinstance(v, str) and v.strip().lower() in {"", "null"}):
        return None
    return parse_strict_int(v, field)


def parse_iso8601(s: str | None):
    if not s:
        return None
    if isinstance(s, datetime):
        dt = s
    else:
        s = str(s).strip()
        # support trailing 'Z' (UTC)
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)  # store naive UTC
    return dt


def require_datetime(v, field: str, message: str | None = None):
    dt = parse_iso8601(v)
    if dt is None:
        if v:
            raise ValidationError(f"รูปแบบวันที่ของ {field} ไม่ถูกต้อง", field=field)
        raise ValidationError(message or f"กรุณาระบุ {field}", field=field)
    return dt
