from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from .errors import ShapeError
from .types import MISSING_KEYPOINT, Keypoint


def _single_output(outputs: Sequence[np.ndarray]) -> np.ndarray:
    if len(outputs) != 1:
        raise ShapeError(f"Expected exactly one output tensor, got {len(outputs)}")
    return np.asarray(outputs[0])


# ------------------------------------------------------------------ #
# Classification
# ------------------------------------------------------------------ #
def decode_classification(outputs: Sequence[np.ndarray]) -> Tuple[int, float]:
    """
    Return (class_id, confidence) of the highest score in the flattened output.
    Ties resolve to the first occurrence.
    """

    scores = _single_output(outputs).reshape(-1)
    if scores.size == 0:
        raise ShapeError("Classification output is empty")
    class_id = int(np.argmax(scores))
    return class_id, float(scores[class_id])


# ------------------------------------------------------------------ #
# Keypoints
# ------------------------------------------------------------------ #
def decode_keypoints(
    outputs: Sequence[np.ndarray],
    frame_width: int,
    frame_height: int,
    threshold: float = 0.5,
) -> List[Keypoint]:
    """
    Decode keypoints from either a heatmap tensor or a direct-coordinate tensor.

    Layouts:
    - (N, K, H, W) heatmaps: one map per keypoint plus a trailing background map, which is
      skipped. Each peak above `threshold` is scaled to frame coordinates; the rest become
      (-1, -1).
    - anything else: K = shape[1] entries whose first two values are (x, y) already in
      frame coordinates.
    """

    out = _single_output(outputs)
    if out.ndim < 2:
        raise ShapeError(f"Keypoints output must have at least 2 dims, got shape {out.shape}")
    n_points = out.shape[1]

    if out.ndim == 4:
        heat_h, heat_w = out.shape[2], out.shape[3]
        if heat_h == 0 or heat_w == 0:
            raise ShapeError(f"Empty heatmap in keypoints output {out.shape}")
        sx = float(frame_width) / heat_w
        sy = float(frame_height) / heat_h

        points: List[Keypoint] = []
        # last map is the background
        for n in range(n_points - 1):
            prob_map = out[0, n]
            idx = int(np.argmax(prob_map))
            row, col = divmod(idx, heat_w)
            if prob_map[row, col] > threshold:
                points.append(Keypoint(col * sx, row * sy))
            else:
                points.append(MISSING_KEYPOINT)
        return points

    if n_points == 0:
        return []
    coords = out.reshape(out.shape[0], n_points, -1)
    if coords.shape[2] < 2:
        raise ShapeError(f"Keypoints output {out.shape} does not hold (x, y) per entry")
    return [Keypoint(float(coords[0, n, 0]), float(coords[0, n, 1])) for n in range(n_points)]


# ------------------------------------------------------------------ #
# Segmentation
# ------------------------------------------------------------------ #
def decode_segmentation(outputs: Sequence[np.ndarray]) -> np.ndarray:
    """
    Per-pixel argmax over channels of a (1, C, H, W) score tensor, returned as a uint8 mask.

    Channel 0 is the starting best; a later channel only takes a pixel when it is strictly
    greater, so ties go to the lower channel.
    """

    score = _single_output(outputs)
    if score.ndim != 4 or score.shape[0] != 1:
        raise ShapeError(f"Segmentation output must be shaped (1, C, H, W), got {score.shape}")
    channels, rows, cols = score.shape[1:]
    if channels == 0:
        raise ShapeError("Segmentation output has no channels")
    if channels > 256:
        raise ShapeError(f"Segmentation output has {channels} channels; uint8 mask holds at most 256 classes")

    mask = np.zeros((rows, cols), dtype=np.uint8)
    best = score[0, 0].copy()
    for ch in range(1, channels):
        better = score[0, ch] > best
        best[better] = score[0, ch][better]
        mask[better] = ch
    return mask
