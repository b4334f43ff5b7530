from flask import current_app, request

from . import bp
from ..errors import StorageError, ValidationError
from ..services import settings_service as settings
from ..services.storage import get_storage, store_image
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.logger import get_logger

logger = get_logger("settings")


# ---------- logo ----------
@bp.get("/logo")
@admin_required
def get_logo():
    return ok("ok", settings.get_logo())


@bp.post("/logo")
@admin_required
def save_logo():
    data = request.get_json(silent=True) or {}
    return ok("บันทึกการตั้งค่า Logo เรียบร้อยแล้ว", settings.save_logo(data))


@bp.post("/logo/upload")
@admin_required
def upload_logo():
    """Multipart: ``logo`` and/or ``darkLogo`` files plus optional size fields."""
    logo = request.files.get("logo")
    dark = request.files.get("darkLogo")
    if not (logo and logo.filename) and not (dark and dark.filename):
        raise ValidationError("กรุณาเลือกไฟล์ Logo", field="logo")

    max_size = current_app.config["MAX_UPLOAD_SIZE"]
    values = {k: request.form.get(k) for k in ("logo_alt_text", "logo_width", "logo_height") if k in request.form}
    # validate sizes before anything is uploaded
    settings.validate_logo(values)
    if logo and logo.filename:
        values["logo_url"] = store_image(logo, "logos", max_size, prefix="logo")
    if dark and dark.filename:
        values["dark_logo_url"] = store_image(dark, "logos", max_size, prefix="dark-logo")
    return ok("อัปโหลด Logo เรียบร้อยแล้ว", settings.save_logo(values))


@bp.delete("/logo/<kind>")
@admin_required
def delete_logo(kind):
    result = settings.clear_logo(kind)
    if result["previous_url"]:
        try:
            get_storage().delete(result["previous_url"])
        except StorageError:
            # setting is already cleared; the orphaned file is left behind
            logger.warning("Could not remove old logo %s", result["previous_url"])
    label = "Logo หลัก" if kind == "main" else "Dark Logo"
    return ok(f"ลบ {label} เรียบร้อยแล้ว", settings.get_logo())


# ---------- homepage / about ----------
@bp.get("/homepage-setting")
@admin_required
def get_homepage_setting():
    return ok("ok", settings.get_setting("homepage"))


@bp.post("/homepage-setting")
@admin_required
def save_homepage_setting():
    data = request.get_json(silent=True) or {}
    if any(k in data for k in settings.LOGO_FIELDS):
        data = {**data, **settings.validate_logo(data)}
    return ok("บันทึกการตั้งค่าหน้าแรกเรียบร้อยแล้ว", settings.save_setting("homepage", data))


@bp.get("/about-setting")
@admin_required
def get_about_setting():
    return ok("ok", settings.get_setting("about"))


@bp.post("/about-setting")
@admin_required
def save_about_setting():
    data = request.get_json(silent=True) or {}
    return ok("บันทึกข้อมูลเกี่ยวกับเราเรียบร้อยแล้ว", settings.save_setting("about", data))
