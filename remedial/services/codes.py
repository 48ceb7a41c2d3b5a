"""Access codes, QR tokens and QR images for published assessments."""
import base64
import io
import logging
import secrets

import qrcode
import qrcode.image.svg
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from remedial.models.assessment import Assessment

log = logging.getLogger(__name__)

# No I, O, 1, 0: students type these by hand
QUIZ_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_CODE_TRIES = 50


def generate_quiz_code(length: int = 6) -> str:
    return "".join(secrets.choice(QUIZ_CODE_ALPHABET) for _ in range(length))


def generate_qr_token() -> str:
    """32 hex chars, embedded in the QR link only."""
    return secrets.token_hex(16)


def normalize_quiz_code(raw: str | None) -> str:
    return (raw or "").strip().upper()


async def generate_unique_quiz_code(db: AsyncSession, length: int = 6) -> str:
    for _ in range(MAX_CODE_TRIES):
        code = generate_quiz_code(length)
        result = await db.execute(select(Assessment.id).where(Assessment.quiz_code == code))
        if result.first() is None:
            return code
    raise RuntimeError(f"Could not find a free quiz code after {MAX_CODE_TRIES} tries")


def build_access_url(base_url: str, quiz_code: str, qr_token: str | None = None) -> str:
    url = f"{base_url.rstrip('/')}/join?code={quiz_code}"
    if qr_token:
        url += f"&token={qr_token}"
    return url


def qr_code_data_url(text: str) -> str:
    """Render text as an SVG QR code and return it as a data URL."""
    qr = qrcode.QRCode(
        version=None,  # auto
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
        image_factory=qrcode.image.svg.SvgPathImage,
    )
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image()

    buf = io.BytesIO()
    img.save(buf)
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"
