# File: app/utils/qr.py
import base64
import logging
from io import BytesIO

import qrcode
import qrcode.image.svg
from qrcode.image.pure import PyPNGImage

logger = logging.getLogger(__name__)


def _build_qr(data: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=6,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)
    return qr


def render_qr_svg(data: str) -> str:
    """Render data as a standalone SVG document."""
    img = _build_qr(data).make_image(image_factory=qrcode.image.svg.SvgPathImage)
    buffer = BytesIO()
    img.save(buffer)
    return buffer.getvalue().decode("utf-8")


def render_qr_png_data_uri(data: str) -> str:
    img = _build_qr(data).make_image(image_factory=PyPNGImage)
    buffer = BytesIO()
    img.save(buffer)
    img_base64 = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return f"data:image/png;base64,{img_base64}"
