"""
Ticket verification codes.
A code is an HMAC-SHA256 signature of the ticket number, rendered as a QR image.
"""

import hashlib
import hmac
import io
import logging

import qrcode

logger = logging.getLogger(__name__)


def generate_qr_signature(ticket_number: str, secret: str) -> str:
    """
    Generate the verification code for a ticket.

    Args:
        ticket_number: Unique ticket number
        secret: HMAC secret

    Returns:
        Last 8 alphanumerics of the ticket number followed by a 64 character hex signature
    """
    message = f"ticket:{ticket_number}"
    signature = hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()

    prefix = "".join(ch for ch in ticket_number if ch.isalnum())[-8:].lower()
    return f"{prefix}{signature}"


def verify_qr_signature(qr_code: str, ticket_number: str, secret: str) -> bool:
    """Check that a verification code belongs to a ticket number."""
    expected = generate_qr_signature(ticket_number, secret)
    return hmac.compare_digest(qr_code, expected)


def render_qr_png(data: str, box_size: int = 10, border: int = 4) -> bytes:
    """Render data as a PNG QR code."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    png_bytes = buffer.getvalue()

    logger.debug(f"Rendered QR code ({len(png_bytes)} bytes)")
    return png_bytes
