from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np

from .types import Detection


def _as_ltwh(boxes) -> np.ndarray:
    b = np.asarray(boxes, dtype=np.float64)
    if b.size == 0:
        return b.reshape(0, 4)
    if b.ndim != 2 or b.shape[1] != 4:
        raise ValueError(f"Expected boxes shape (N, 4) as left/top/width/height, got {b.shape}")
    return b


def nms_boxes(
    boxes,
    scores,
    conf_threshold: float,
    nms_threshold: float,
) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) as (left, top, width, height) and scores shape (N,).
    Returns indices of kept boxes, highest score first.

    Boxes scoring below `conf_threshold` are never kept. A box is dropped when its IoU with
    an already kept box is >= `nms_threshold`. Equal scores keep their input order.
    """

    b = _as_ltwh(boxes)
    s = np.asarray(scores, dtype=np.float64).reshape(-1)
    if b.shape[0] != s.shape[0]:
        raise ValueError(f"boxes and scores length mismatch: {b.shape[0]} != {s.shape[0]}")

    candidates = np.where(s >= conf_threshold)[0]
    if candidates.size == 0:
        return np.empty((0,), dtype=np.int32)

    x1 = b[:, 0]
    y1 = b[:, 1]
    x2 = b[:, 0] + b[:, 2]
    y2 = b[:, 1] + b[:, 3]
    areas = b[:, 2] * b[:, 3]

    order = candidates[np.argsort(-s[candidates], kind="stable")]
    keep = []

    while order.size > 0:
        i = order[0]
        keep.append(i)

        xx1 = np.maximum(x1[i], x1[order[1:]])
        yy1 = np.maximum(y1[i], y1[order[1:]])
        xx2 = np.minimum(x2[i], x2[order[1:]])
        yy2 = np.minimum(y2[i], y2[order[1:]])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[order[1:]] - inter
        iou = np.divide(inter, union, out=np.zeros_like(inter), where=union > 0)

        inds = np.where(iou < nms_threshold)[0]
        order = order[inds + 1]

    return np.array(keep, dtype=np.int32)


def suppress(
    candidates: Sequence[Detection],
    conf_threshold: float,
    nms_threshold: float,
    cross_class: bool = False,
) -> List[Detection]:
    """
    Run NMS over decoded detections.

    cross_class=True suppresses overlaps regardless of class. Otherwise each class is
    suppressed on its own and the results are concatenated in ascending class id order.
    """

    if not candidates:
        return []

    if cross_class:
        return _suppress_group(list(candidates), conf_threshold, nms_threshold)

    by_class: Dict[int, List[Detection]] = {}
    for det in candidates:
        if det.confidence >= conf_threshold:
            by_class.setdefault(det.class_id, []).append(det)

    kept: List[Detection] = []
    for cls_id in sorted(by_class):
        kept.extend(_suppress_group(by_class[cls_id], conf_threshold, nms_threshold))
    return kept


def _suppress_group(group: List[Detection], conf_threshold: float, nms_threshold: float) -> List[Detection]:
    boxes = [tuple(det.box) for det in group]
    scores = [det.confidence for det in group]
    keep_idx = nms_boxes(boxes, scores, conf_threshold, nms_threshold)
    return [group[i] for i in keep_idx]
