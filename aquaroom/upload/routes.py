from flask import current_app, request

from . import bp
from ..errors import ValidationError
from ..services.storage import store_image, validate_image
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.logger import get_logger

logger = get_logger("upload")


# POST /api/upload  (multipart, any field name, one or more files)
@bp.post("/upload")
@admin_required
def upload():
    files = [f for f in request.files.values() if f and f.filename]
    if not files:
        raise ValidationError("ไม่พบไฟล์ที่อัปโหลด", field="file")

    max_size = current_app.config["MAX_UPLOAD_SIZE"]
    # reject the whole batch before storing anything
    for f in files:
        validate_image(f, max_size)
    urls = [store_image(f, "products", max_size) for f in files]
    logger.info("Uploaded %s file(s)", len(urls))
    return ok("อัปโหลดไฟล์สำเร็จ", {"urls": urls}, urls=urls)
