"""
qr.py — QR image encode / decode for otpauth URIs (or any text).

- Encoding uses `qrcode` to build the symbol and Pillow to rasterise it.
  Output is a fixed 2048x2048 grayscale image so images stay identical to
  ones produced earlier; every module is an integer number of pixels.
- Decoding uses OpenCV's QRCodeDetector on an 8-bit grayscale copy of the
  input, which may have any size or mode.

This module only moves text in and out of images; parsing the text is the
job of uri.py.
"""

import logging

import cv2
import numpy as np
import qrcode
from PIL import Image
from qrcode.exceptions import DataOverflowError

from .errors import Corrupt, ImageIoFailure, NotFound, PayloadTooLarge

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
QR_IMAGE_SIZE = 2048
QR_BORDER = 4               # quiet zone, in modules
QR_ERROR_CORRECTION = qrcode.constants.ERROR_CORRECT_H
BLACK = 0
WHITE = 255


def encode(text: str, size: int = QR_IMAGE_SIZE, error_correction: int = QR_ERROR_CORRECTION) -> Image.Image:
    """
    Render `text` as a QR symbol on a white `size` x `size` grayscale image.

    The smallest QR version that fits is chosen. Each module is scaled to
    size // modules pixels with nearest-neighbour scaling and the symbol is
    centred; leftover pixels stay white.

    Raises:
        PayloadTooLarge: if the text exceeds QR capacity at this error
            correction level, or the symbol has more modules than `size`
    """
    qr = qrcode.QRCode(version=None, error_correction=error_correction, box_size=1, border=QR_BORDER)
    qr.add_data(text)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as e:
        raise PayloadTooLarge(f"{len(text)} characters do not fit in a QR symbol") from e

    matrix = qr.get_matrix()  # includes the quiet zone
    modules = len(matrix)
    box = size // modules
    if box < 1:
        raise PayloadTooLarge(f"QR symbol needs {modules} pixels, image is only {size}")

    symbol = Image.new("L", (modules, modules), WHITE)
    symbol.putdata([BLACK if dark else WHITE for row in matrix for dark in row])
    symbol = symbol.resize((modules * box, modules * box), Image.Resampling.NEAREST)

    canvas = Image.new("L", (size, size), WHITE)
    offset = (size - modules * box) // 2
    canvas.paste(symbol, (offset, offset))
    logger.debug("QR: version=%d, modules=%d, box=%dpx, image=%dpx", qr.version, modules, box, size)
    return canvas


def decode(image: Image.Image) -> str:
    """
    Locate and decode the QR symbol in `image`, returning its text.

    Raises:
        NotFound: no QR symbol could be located
        Corrupt: a symbol was located but its data could not be recovered
    """
    gray = np.asarray(image.convert("L"), dtype=np.uint8)
    detector = cv2.QRCodeDetector()
    data, points, _ = detector.detectAndDecode(gray)
    if points is None or len(points) == 0:
        raise NotFound("no QR code detected in image")
    if not data:
        raise Corrupt("QR code detected but could not be decoded")
    logger.debug("QR: decoded %d characters from %dx%d image", len(data), image.width, image.height)
    return data


def write_qr_code(text: str, path, size: int = QR_IMAGE_SIZE) -> Image.Image:
    """
    Encode `text` and save it to `path`; the format follows the file extension.
    An existing file is overwritten; the parent directory must exist.

    Raises:
        PayloadTooLarge, ImageIoFailure
    """
    img = encode(text, size=size)
    try:
        img.save(path)
    except (OSError, ValueError) as e:
        raise ImageIoFailure(f"could not save {path}: {e}") from e
    return img


def read_qr_code(path) -> str:
    """
    Open the image at `path` and decode its QR symbol.

    Raises:
        ImageIoFailure, NotFound, Corrupt
    """
    try:
        with Image.open(path) as img:
            gray = img.convert("L")
    except OSError as e:
        raise ImageIoFailure(f"could not read {path}: {e}") from e
    return decode(gray)
