from __future__ import annotations

from typing import Protocol

import numpy as np

from .config import InputConfig


class FramePreprocessor(Protocol):
    def __call__(self, image: np.ndarray, cfg: InputConfig) -> np.ndarray:
        ...


def blob_from_image(image: np.ndarray, cfg: InputConfig) -> np.ndarray:
    """
    Build a (1, C, H, W) float32 blob from an OpenCV-style image.

    Mean subtraction, scaling, R/B swap and the resize (stretch or
    aspect-preserving center crop) are delegated to `cv2.dnn.blobFromImage`.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for blob_from_image(). Install with `pip install opencv-python`.") from e

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array.")
    if image.ndim not in (2, 3):
        raise ValueError(f"Expected image shape (H, W) or (H, W, C), got {image.shape}")

    width, height = cfg.require_size()
    return cv2.dnn.blobFromImage(
        image,
        scalefactor=cfg.scale,
        size=(width, height),
        mean=cfg.mean,
        swapRB=cfg.swap_rb,
        crop=cfg.crop,
    )
