"""QR challenge rendering.

Turns the raw challenge string issued by WhatsApp Web into a PNG data URL
that a browser can put straight into an ``<img src=...>``.
"""

import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from wabridge.exceptions import RenderFailed

DATA_URL_PREFIX = "data:image/png;base64,"


def build_qr_png(code: str, box_size: int = 10, border: int = 4) -> bytes:
    """Encode ``code`` as a QR symbol and return the PNG bytes."""
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(code)
    qr.make(fit=True)
    img = qr.make_image(fill_color="#000000", back_color="#FFFFFF").convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def render_qr_data_url(code: str) -> str:
    """Render a QR challenge into a ``data:image/png;base64,...`` URL.

    Raises:
        RenderFailed: If the challenge is empty or cannot be encoded
    """
    if not code:
        raise RenderFailed("Cannot render an empty QR challenge")
    try:
        png = build_qr_png(code)
    except Exception as e:
        raise RenderFailed(f"QR encoding failed: {e}") from e
    return DATA_URL_PREFIX + base64.b64encode(png).decode("ascii")
