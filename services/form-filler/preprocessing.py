"""Image preprocessing ahead of OCR.

Prepares scanned pages and photos for Tesseract:
1. Decode image bytes
2. Grayscale conversion
3. Deskew via Hough line detection
4. CLAHE contrast normalization
5. Upscale small scans so glyphs reach a recognizable height
6. Encode as lossless PNG

Each step degrades gracefully; if it fails the previous image continues.
"""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Tesseract accuracy drops sharply below roughly 1000px of page width
MIN_OCR_WIDTH = 1000
MAX_UPSCALE = 3.0


def preprocess(image_bytes: bytes) -> bytes:
    """Run the OCR preprocessing pipeline on raw image bytes.

    Returns PNG bytes. If the image cannot be decoded, returns the original bytes.
    """
    img = _decode(image_bytes)
    if img is None:
        logger.warning("preprocessing: could not decode image, returning original")
        return image_bytes

    gray = _grayscale(img)
    gray = _deskew(gray)
    gray = _clahe_normalize(gray)
    gray = _upscale(gray)
    return _encode(gray, fallback=image_bytes)


def _decode(image_bytes: bytes) -> np.ndarray | None:
    """Decode raw bytes into an OpenCV BGR array."""
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    return cv2.imdecode(arr, cv2.IMREAD_COLOR)


def _grayscale(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return img
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def _deskew(gray: np.ndarray) -> np.ndarray:
    """Correct rotation if more than 1 degree is detected via Hough lines."""
    try:
        edges = cv2.Canny(gray, 50, 150, apertureSize=3)
        lines = cv2.HoughLinesP(edges, 1, np.pi / 180, threshold=100, minLineLength=50, maxLineGap=10)

        if lines is None or len(lines) < 3:
            return gray

        angles = []
        for line in lines:
            x1, y1, x2, y2 = line[0]
            angle = np.degrees(np.arctan2(y2 - y1, x2 - x1))
            # Text baselines are near-horizontal
            if abs(angle) < 45:
                angles.append(angle)

        if not angles:
            return gray

        median_angle = float(np.median(angles))

        # Tesseract copes with small skew on its own
        if abs(median_angle) < 1.0:
            return gray

        logger.debug("preprocessing: deskewing by %.1f degrees", median_angle)
        h, w = gray.shape[:2]
        matrix = cv2.getRotationMatrix2D((w // 2, h // 2), median_angle, 1.0)
        return cv2.warpAffine(gray, matrix, (w, h), flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE)

    except Exception as e:
        logger.warning("preprocessing: deskew failed: %s", e)
        return gray


def _clahe_normalize(gray: np.ndarray) -> np.ndarray:
    """Apply CLAHE to even out uneven lighting on photographed pages."""
    try:
        clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
        return clahe.apply(gray)
    except Exception as e:
        logger.warning("preprocessing: CLAHE failed: %s", e)
        return gray


def _upscale(gray: np.ndarray) -> np.ndarray:
    """Enlarge narrow images; never shrinks."""
    try:
        h, w = gray.shape[:2]
        if w >= MIN_OCR_WIDTH:
            return gray

        factor = min(MIN_OCR_WIDTH / w, MAX_UPSCALE)
        return cv2.resize(gray, (int(w * factor), int(h * factor)), interpolation=cv2.INTER_CUBIC)

    except Exception as e:
        logger.warning("preprocessing: upscale failed: %s", e)
        return gray


def _encode(img: np.ndarray, fallback: bytes) -> bytes:
    """Encode image as PNG bytes."""
    try:
        success, buf = cv2.imencode(".png", img)
        if success:
            return buf.tobytes()
    except Exception as e:
        logger.warning("preprocessing: PNG encode failed: %s", e)

    return fallback
