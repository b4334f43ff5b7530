# aquaroom/services/settings_service.py
"""Singleton site-content documents (homepage, about, contact) and the logo block."""
from __future__ import annotations

from sqlalchemy.orm.attributes import flag_modified

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..model import SiteSetting
from ..utils.logger import get_logger
from ..utils.parsing import parse_strict_int

logger = get_logger("settings")

LOGO_FIELDS = ("logo_url", "logo_alt_text", "logo_width", "logo_height", "dark_logo_url")
LOGO_DEFAULTS = {
    "logo_url": None,
    "logo_alt_text": "AquaRoom Logo",
    "logo_width": 120,
    "logo_height": 40,
    "dark_logo_url": None,
}

SETTING_FIELDS = {
    "homepage": (
        "hero_title", "hero_subtitle", "hero_image_url",
        "why_choose_title", "why_choose_subtitle",
        "quality_title", "quality_subtitle",
        "quality_feature_1", "quality_feature_2", "quality_feature_3",
        "review_title", "review_text", "review_name",
        "cta_title", "cta_subtitle",
        "cta_button_1_text", "cta_button_1_link",
        "cta_button_2_text", "cta_button_2_link",
    ) + LOGO_FIELDS,
    "about": (
        "story_title", "story_content", "story_image_url",
        "mission_title", "mission_subtitle",
        "mission_1_title", "mission_1_desc",
        "mission_2_title", "mission_2_desc",
        "mission_3_title", "mission_3_desc",
        "values_title", "values_subtitle",
    ),
    "contact": (
        "address", "phone", "email", "line", "facebook", "tiktok",
        "map_embed", "business_hours_first", "business_hours_two",
    ),
}


def _row(key):
    return SiteSetting.query.filter_by(key=key).first()


def get_setting(key: str) -> dict:
    row = _row(key)
    return dict(row.data or {}) if row else {}


def save_setting(key: str, data: dict) -> dict:
    """Merges allowed fields into the stored document; other keys are ignored."""
    allowed = SETTING_FIELDS[key]
    if not isinstance(data, dict):
        raise ValidationError("ข้อมูลไม่ถูกต้อง")
    values = {k: v for k, v in data.items() if k in allowed}
    for k, v in values.items():
        if v is not None and not isinstance(v, (str, int, float)):
            raise ValidationError(f"{k} ต้องเป็นข้อความ", field=k)

    row = _row(key)
    if row is None:
        row = SiteSetting(key=key, data={})
        db.session.add(row)
    row.data = {**(row.data or {}), **values}
    flag_modified(row, "data")
    db.session.commit()
    logger.info("Saved %s setting fields=%s", key, sorted(values))
    return dict(row.data)


# ---------- logo ----------

def get_logo() -> dict:
    doc = get_setting("homepage")
    return {k: doc.get(k) if doc.get(k) is not None else LOGO_DEFAULTS[k] for k in LOGO_FIELDS}


def _dimension(v, field, low, high, message):
    if v is None or v == "":
        return None
    n = parse_strict_int(v, field, message)
    if n < low or n > high:
        raise ValidationError(message, field=field)
    return n


def validate_logo(data: dict) -> dict:
    width = _dimension(data.get("logo_width"), "logo_width", 50, 300, "ความกว้าง Logo ต้องอยู่ระหว่าง 50-300 พิกเซล")
    height = _dimension(data.get("logo_height"), "logo_height", 20, 100, "ความสูง Logo ต้องอยู่ระหว่าง 20-100 พิกเซล")
    out = {}
    if width is not None:
        out["logo_width"] = width
    if height is not None:
        out["logo_height"] = height
    if "logo_alt_text" in data:
        out["logo_alt_text"] = (data.get("logo_alt_text") or "").strip() or LOGO_DEFAULTS["logo_alt_text"]
    for k in ("logo_url", "dark_logo_url"):
        if k in data:
            out[k] = data.get(k) or None
    return out


def save_logo(data: dict) -> dict:
    save_setting("homepage", validate_logo(data))
    return get_logo()


def clear_logo(kind: str) -> dict:
    if kind not in ("main", "dark"):
        raise ValidationError("ประเภท Logo ไม่ถูกต้อง", field="type")
    row = _row("homepage")
    if row is None:
        raise NotFoundError("ไม่พบการตั้งค่า Logo")
    field = "logo_url" if kind == "main" else "dark_logo_url"
    previous = (row.data or {}).get(field)
    row.data = {**(row.data or {}), field: None}
    flag_modified(row, "data")
    db.session.commit()
    logger.info("Cleared %s logo", kind)
    return {"cleared": field, "previous_url": previous}
