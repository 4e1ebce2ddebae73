"""QR code rendering."""

import io

import qrcode
from PIL import Image as PILImage
from qrcode.constants import ERROR_CORRECT_L

from imageshare.core.constants import IMGUR_PAGE_URL, QR_BORDER, QR_IMAGE_SIZE


def render_qr_png(text: str, size: int = QR_IMAGE_SIZE) -> bytes:
    """Encode text as a square PNG QR code of the given pixel size."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_L, border=QR_BORDER)
    qr.add_data(text)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white").get_image()
    img = img.convert("L").resize((size, size), PILImage.Resampling.NEAREST)

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def upload_link(base_url: str, name: str) -> str:
    return f"{base_url.rstrip('/')}/uploads/{name}"


def imgur_link(image_id: str) -> str:
    return f"{IMGUR_PAGE_URL}/{image_id}"
