"""
Image Encoding
==============

PNG encoding of rendered RGBA overlays for transport.

This is the only place in the codebase that encodes images.
"""

import base64

import cv2
import numpy as np


class ImageEncodeError(Exception):
    """Raised when an image cannot be encoded."""
    pass


def encode_png(image: np.ndarray) -> bytes:
    """
    Encode an RGBA uint8 image as PNG.

    Args:
        image: (H, W, 4) uint8 array in RGBA order

    Returns:
        PNG file bytes

    Raises:
        ImageEncodeError: If the array is not RGBA8 or encoding fails
    """
    if image.ndim != 3 or image.shape[2] != 4:
        raise ImageEncodeError(f"Expected (H, W, 4) RGBA image, got shape {image.shape}")
    if image.dtype != np.uint8:
        raise ImageEncodeError(f"Expected uint8 image, got dtype {image.dtype}")

    # OpenCV expects BGRA channel order
    bgra = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    ok, buffer = cv2.imencode(".png", bgra)
    if not ok:
        raise ImageEncodeError("cv2.imencode failed for PNG")

    return buffer.tobytes()


def encode_png_base64(image: np.ndarray) -> str:
    """Encode an RGBA image as base64 PNG text."""
    return base64.b64encode(encode_png(image)).decode()


def decode_png(data: bytes) -> np.ndarray:
    """
    Decode PNG bytes back to an RGBA uint8 array.

    Raises:
        ImageEncodeError: If the bytes are not a decodable image
    """
    buffer = np.frombuffer(data, np.uint8)
    bgra = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if bgra is None or bgra.ndim != 3 or bgra.shape[2] != 4:
        raise ImageEncodeError("Failed to decode PNG as a 4-channel image")
    return cv2.cvtColor(bgra, cv2.COLOR_BGRA2RGBA)
