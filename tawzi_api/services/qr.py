# SPDX-License-Identifier: Apache-2.0

"""
QR credential rendering.

The credential encodes the beneficiary's national identifier at the lowest
error correction level for maximum capacity. A payload that does not fit
is replaced by the beneficiary store key.
"""

import io
import base64
from dataclasses import dataclass
from typing import Optional
import qrcode
from qrcode.constants import ERROR_CORRECT_L
from qrcode.exceptions import DataOverflowError
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

FILL_COLOR = "#1a302a"
BACK_COLOR = "#ffffff"


@dataclass
class RenderedQR:
    """Rendered QR image and the text it encodes."""
    text: str
    png: bytes
    fallback: bool = False

    @property
    def data_uri(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.png).decode("ascii")


class QRCodeService:
    """Renders QR credentials as PNG images."""

    def __init__(self, box_size: int = 8, border: int = 4):
        self.box_size = box_size
        self.border = border

    def _render(self, text: str) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=ERROR_CORRECT_L,
            box_size=self.box_size,
            border=self.border
        )
        qr.add_data(text)
        try:
            qr.make(fit=True)
        except ValueError as e:
            # qrcode 8 reports a payload past version 40 as an invalid version
            raise DataOverflowError(str(e)) from e

        image = qr.make_image(fill_color=FILL_COLOR, back_color=BACK_COLOR)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def render(self, text: str, fallback_text: Optional[str] = None) -> RenderedQR:
        """
        Render a payload, falling back to ``fallback_text`` when it overflows.

        Raises:
            DataOverflowError: If neither payload fits
        """
        with tracer.start_as_current_span("qr.render") as span:
            try:
                png = self._render(text)
                span.set_attribute("qr.fallback", False)
                return RenderedQR(text=text, png=png)
            except DataOverflowError:
                if not fallback_text:
                    raise
                logger.warning("QR payload too long, rendering store key fallback")

            span.set_attribute("qr.fallback", True)
            return RenderedQR(text=fallback_text, png=self._render(fallback_text), fallback=True)
