from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, NamedTuple, Tuple


class Rect(NamedTuple):
    """
    Axis-aligned box in integer pixel coordinates.
    """

    left: int
    top: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        return self.left, self.top, self.left + self.width, self.top + self.height


class Keypoint(NamedTuple):
    x: float
    y: float

    @property
    def located(self) -> bool:
        return not (self.x == -1 and self.y == -1)


MISSING_KEYPOINT = Keypoint(-1.0, -1.0)


@dataclass
class Detection:
    """
    Single decoded detection: class id, confidence and a pixel-space box.
    """

    class_id: int
    confidence: float
    box: Rect


@dataclass
class DetectionResult:
    """
    Detections as parallel lists (class ids, confidences, boxes).
    """

    class_ids: List[int] = field(default_factory=list)
    confidences: List[float] = field(default_factory=list)
    boxes: List[Rect] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.boxes)

    def append(self, det: Detection) -> None:
        self.class_ids.append(det.class_id)
        self.confidences.append(det.confidence)
        self.boxes.append(det.box)

    def detections(self) -> List[Detection]:
        return [
            Detection(class_id=cls_id, confidence=conf, box=box)
            for cls_id, conf, box in zip(self.class_ids, self.confidences, self.boxes)
        ]

    @classmethod
    def from_detections(cls, dets) -> "DetectionResult":
        out = cls()
        for det in dets:
            out.append(det)
        return out
