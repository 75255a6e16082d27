# SPDX-License-Identifier: Apache-2.0

"""
Tests for QR credential rendering.
"""

import base64
import pytest
import qrcode
from unittest.mock import patch
from qrcode.exceptions import DataOverflowError

from tawzi_api.services.qr import QRCodeService

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestQRCodeService:
    """Rendering and overflow fallback."""

    def test_render_png(self):
        rendered = QRCodeService().render("401234567")

        assert rendered.text == "401234567"
        assert rendered.fallback is False
        assert rendered.png.startswith(PNG_SIGNATURE)

    def test_data_uri(self):
        rendered = QRCodeService().render("401234567")

        prefix, encoded = rendered.data_uri.split(",", 1)
        assert prefix == "data:image/png;base64"
        assert base64.b64decode(encoded) == rendered.png

    def test_overflow_falls_back_to_store_key(self):
        rendered = QRCodeService().render("x" * 4000, fallback_text="ben-1")

        assert rendered.fallback is True
        assert rendered.text == "ben-1"
        assert rendered.png.startswith(PNG_SIGNATURE)

    def test_overflow_without_fallback(self):
        with pytest.raises(DataOverflowError):
            QRCodeService().render("x" * 4000)

    def test_invalid_version_reported_as_overflow(self):
        with patch.object(qrcode.QRCode, 'make',
                          side_effect=ValueError("Invalid version (was 41, expected 1 to 40)")):
            with pytest.raises(DataOverflowError):
                QRCodeService().render("401234567")

    def test_invalid_version_falls_back_to_store_key(self):
        original_make = qrcode.QRCode.make

        def make(qr, fit=True):
            if len(qr.data_list[0].data) > 100:
                raise ValueError("Invalid version (was 41, expected 1 to 40)")
            return original_make(qr, fit=fit)

        with patch.object(qrcode.QRCode, 'make', make):
            rendered = QRCodeService().render("x" * 200, fallback_text="ben-1")

        assert rendered.fallback is True
        assert rendered.text == "ben-1"
        assert rendered.png.startswith(PNG_SIGNATURE)
