from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Sequence

import numpy as np

from .errors import ShapeError, UnsupportedLayerError
from .nms import suppress
from .types import Detection, DetectionResult, Rect


class DetectionLayout(str, Enum):
    """
    Output conventions of detection networks, keyed by the type of the network's last layer.
    """

    # (1, 1, N, 7): [batch_id, class_id, confidence, left, top, right, bottom]
    DETECTION_OUTPUT = "DetectionOutput"
    # (N, 5 + C): [center_x, center_y, width, height, objectness, class_scores...]
    REGION = "Region"


def resolve_layout(layer_type: str) -> DetectionLayout:
    try:
        return DetectionLayout(layer_type)
    except ValueError:
        raise UnsupportedLayerError(layer_type) from None


def clamp_box(left: int, top: int, width: int, height: int, frame_width: int, frame_height: int) -> Rect:
    """
    Keep the top-left corner inside the frame and the size at least 1px without running past the edge.
    """

    left = max(0, min(left, frame_width - 1))
    top = max(0, min(top, frame_height - 1))
    width = max(1, min(width, frame_width - left))
    height = max(1, min(height, frame_height - top))
    return Rect(left, top, width, height)


def decode_detection_output(
    outputs: Sequence[np.ndarray],
    frame_width: int,
    frame_height: int,
    conf_threshold: float,
) -> List[Detection]:
    """
    Decode 7-value detection records. No NMS: these networks suppress duplicates themselves.

    Coordinates come either in pixels or normalized to [0, 1]. A box spanning 2px or less
    is taken as normalized and rescaled by the frame size.
    """

    dets: List[Detection] = []
    fw32 = np.float32(frame_width)
    fh32 = np.float32(frame_height)
    for out in outputs:
        data = np.asarray(out, dtype=np.float32).reshape(-1)
        if data.size % 7 != 0:
            raise ShapeError(f"DetectionOutput tensor of {data.size} values is not a multiple of 7")
        records = data.reshape(-1, 7)
        records = records[records[:, 2] >= np.float32(conf_threshold)]

        for rec in records:
            left, top, right, bottom = (int(v) for v in rec[3:7])
            width = right - left + 1
            height = bottom - top + 1

            if width <= 2 or height <= 2:
                left = int(rec[3] * fw32)
                top = int(rec[4] * fh32)
                right = int(rec[5] * fw32)
                bottom = int(rec[6] * fh32)
                width = right - left + 1
                height = bottom - top + 1

            dets.append(
                Detection(
                    class_id=int(rec[1]),
                    confidence=float(rec[2]),
                    box=clamp_box(left, top, width, height, frame_width, frame_height),
                )
            )
    return dets


def decode_region(
    outputs: Sequence[np.ndarray],
    frame_width: int,
    frame_height: int,
    conf_threshold: float,
) -> List[Detection]:
    """
    Decode YOLO region rows into candidates, before NMS.

    The confidence of a row is its best class score; the objectness column is not used.
    """

    dets: List[Detection] = []
    scale = np.array([frame_width, frame_height, frame_width, frame_height], dtype=np.float32)
    for out in outputs:
        p = np.asarray(out, dtype=np.float32)
        if p.ndim == 0:
            raise ShapeError("Region output must be a matrix, got a scalar")
        p = p.reshape(-1, p.shape[-1]) if p.ndim != 2 else p
        if p.shape[0] == 0:
            continue
        if p.shape[1] < 6:
            raise ShapeError(f"Region output rows need 4 box values, objectness and class scores, got {p.shape}")

        class_scores = p[:, 5:]
        class_ids = np.argmax(class_scores, axis=1)
        confs = class_scores[np.arange(class_scores.shape[0]), class_ids]

        keep = confs >= np.float32(conf_threshold)
        pix = np.trunc(p[keep, :4] * scale).astype(np.int64)

        for (cx, cy, w, h), cls_id, conf in zip(pix.tolist(), class_ids[keep], confs[keep]):
            left = cx - int(w / 2)
            top = cy - int(h / 2)
            dets.append(
                Detection(
                    class_id=int(cls_id),
                    confidence=float(conf),
                    box=clamp_box(left, top, w, h, frame_width, frame_height),
                )
            )
    return dets


_DECODERS: Dict[DetectionLayout, Callable[..., List[Detection]]] = {
    DetectionLayout.DETECTION_OUTPUT: decode_detection_output,
    DetectionLayout.REGION: decode_region,
}


def decode_detections(
    outputs: Sequence[np.ndarray],
    layout: DetectionLayout,
    frame_width: int,
    frame_height: int,
    conf_threshold: float = 0.5,
    nms_threshold: float = 0.0,
    nms_across_classes: bool = False,
) -> DetectionResult:
    """
    Decode raw detection outputs into pixel-space boxes.

    NMS runs only for the REGION layout and only when `nms_threshold` is nonzero.
    """

    candidates = _DECODERS[layout](outputs, frame_width, frame_height, conf_threshold)

    if layout == DetectionLayout.REGION and nms_threshold:
        candidates = suppress(candidates, conf_threshold, nms_threshold, cross_class=nms_across_classes)

    return DetectionResult.from_detections(candidates)
