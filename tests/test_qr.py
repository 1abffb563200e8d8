"""Tests for QR encode / decode and the QR-based key factories."""

import numpy as np
import pytest
from PIL import Image

from otpkey import HMACType, TOTPKey, otpauth_from_qr_code, otpauth_from_uri, qr
from otpkey.errors import Corrupt, ImageIoFailure, NotFound, PayloadTooLarge

TOTP_URI = (
    "otpauth://totp/ACME%20Co:john.doe@email.com?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ"
    "&issuer=ACME%20Co&algorithm=SHA256&digits=7&period=60"
)


@pytest.fixture(scope="module")
def totp_image():
    return qr.encode(TOTP_URI)


def test_encode_has_canonical_size(totp_image):
    assert totp_image.size == (2048, 2048)
    assert totp_image.mode == "L"


def test_encode_uses_whole_pixel_modules(totp_image):
    assert set(np.unique(np.asarray(totp_image))) <= {0, 255}
    # top-left corner is quiet zone / padding
    assert totp_image.getpixel((0, 0)) == 255


def test_encode_custom_size():
    assert qr.encode("hello", size=512).size == (512, 512)


def test_decode_round_trip(totp_image):
    assert qr.decode(totp_image) == TOTP_URI


def test_decode_accepts_other_sizes_and_modes(totp_image):
    small = totp_image.convert("RGB").resize((700, 700), Image.Resampling.NEAREST)
    assert qr.decode(small) == TOTP_URI


def test_qr_to_key_matches_direct_key(totp_image):
    decoded = otpauth_from_qr_code(totp_image)
    direct = TOTPKey(
        key="HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ",
        name="john.doe@email.com",
        issuer="ACME Co",
        digits=7,
        time_step=60,
        hmac_type=HMACType.SHA256,
    )
    for timestamp in (0, 1700000000, 2000000000):
        assert decoded.get_code(timestamp) == direct.get_code(timestamp)
    assert decoded.get_name() == direct.get_name()
    assert decoded.get_type() is direct.get_type()


def test_key_to_qr_code_file_round_trip(tmp_path):
    key = otpauth_from_uri(TOTP_URI)
    path = tmp_path / "key.png"
    image = key.to_qr_code(path)
    assert path.exists()
    assert image.size == (2048, 2048)
    assert otpauth_from_qr_code(str(path)) == key


def test_write_and_read_qr_code(tmp_path):
    path = tmp_path / "text.png"
    qr.write_qr_code("otpauth://hotp/x?secret=ABCDEFGH", path, size=300)
    assert Image.open(path).size == (300, 300)
    assert qr.read_qr_code(path) == "otpauth://hotp/x?secret=ABCDEFGH"


def test_blank_image_is_not_found():
    with pytest.raises(NotFound):
        qr.decode(Image.new("L", (512, 512), 255))


def test_damaged_symbol_is_rejected(totp_image):
    pixels = np.array(totp_image)
    # wipe a band across the middle, clear of the finder patterns
    height = pixels.shape[0]
    pixels[int(height * 0.3):int(height * 0.7), :] = 255
    with pytest.raises((NotFound, Corrupt)):
        qr.decode(Image.fromarray(pixels))


def test_undecodable_symbol_is_corrupt(monkeypatch):
    class FakeDetector:
        def detectAndDecode(self, img):
            return "", np.array([[[0, 0], [10, 0], [10, 10], [0, 10]]], dtype=np.float32), None

    monkeypatch.setattr(qr.cv2, "QRCodeDetector", FakeDetector)
    with pytest.raises(Corrupt):
        qr.decode(Image.new("L", (64, 64), 255))


def test_payload_too_large():
    with pytest.raises(PayloadTooLarge):
        qr.encode("A" * 8000)


def test_version_overflow_is_payload_too_large(monkeypatch):
    def make(self, fit=True):
        raise ValueError("Invalid version (was 41, expected 1 to 40)")

    monkeypatch.setattr(qr.qrcode.QRCode, "make", make)
    with pytest.raises(PayloadTooLarge):
        qr.encode(TOTP_URI)


def test_image_too_small_for_symbol():
    with pytest.raises(PayloadTooLarge):
        qr.encode(TOTP_URI, size=20)


def test_read_missing_file(tmp_path):
    with pytest.raises(ImageIoFailure):
        qr.read_qr_code(tmp_path / "missing.png")


def test_read_non_image_file(tmp_path):
    path = tmp_path / "not-an-image.png"
    path.write_text("hello")
    with pytest.raises(ImageIoFailure):
        qr.read_qr_code(path)


def test_write_to_missing_directory(tmp_path):
    with pytest.raises(ImageIoFailure):
        qr.write_qr_code(TOTP_URI, tmp_path / "nope" / "key.png")


def test_write_unknown_extension(tmp_path):
    with pytest.raises(ImageIoFailure):
        qr.write_qr_code(TOTP_URI, tmp_path / "key.unknown")
