import unittest

import numpy as np

from dnn_kit.nms import nms_boxes, suppress
from dnn_kit.types import Detection, Rect


def _det(class_id: int, confidence: float, box) -> Detection:
    return Detection(class_id=class_id, confidence=confidence, box=Rect(*box))


class TestNmsBoxes(unittest.TestCase):
    def test_overlap_suppressed_highest_first(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [1, 1, 10, 10], [50, 50, 10, 10]])
        scores = np.array([0.8, 0.9, 0.7])
        keep = nms_boxes(boxes, scores, 0.5, 0.5)
        self.assertEqual(keep.tolist(), [1, 2])

    def test_iou_below_threshold_kept(self) -> None:
        # IoU = 81 / 119 ~ 0.68
        boxes = [[0, 0, 10, 10], [1, 1, 10, 10]]
        keep = nms_boxes(boxes, [0.9, 0.8], 0.0, 0.7)
        self.assertEqual(keep.tolist(), [0, 1])

    def test_iou_equal_to_threshold_suppressed(self) -> None:
        boxes = [[0, 0, 10, 10], [0, 0, 10, 10]]
        keep = nms_boxes(boxes, [0.9, 0.8], 0.0, 1.0)
        self.assertEqual(keep.tolist(), [0])

    def test_equal_scores_keep_input_order(self) -> None:
        boxes = [[0, 0, 10, 10], [0, 0, 10, 10], [0, 0, 10, 10]]
        keep = nms_boxes(boxes, [0.5, 0.5, 0.5], 0.0, 0.5)
        self.assertEqual(keep.tolist(), [0])

    def test_scores_below_conf_threshold_dropped(self) -> None:
        boxes = [[0, 0, 10, 10], [100, 100, 10, 10]]
        keep = nms_boxes(boxes, [0.9, 0.2], 0.5, 0.5)
        self.assertEqual(keep.tolist(), [0])

    def test_empty(self) -> None:
        keep = nms_boxes(np.zeros((0, 4)), np.zeros((0,)), 0.5, 0.5)
        self.assertEqual(keep.shape, (0,))

    def test_length_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            nms_boxes([[0, 0, 1, 1]], [0.5, 0.6], 0.0, 0.5)


class TestSuppress(unittest.TestCase):
    def test_per_class_vs_cross_class(self) -> None:
        dets = [_det(0, 0.9, (10, 10, 20, 20)), _det(1, 0.8, (10, 10, 20, 20))]
        per_class = suppress(dets, 0.5, 1.0, cross_class=False)
        self.assertEqual([d.class_id for d in per_class], [0, 1])
        cross = suppress(dets, 0.5, 1.0, cross_class=True)
        self.assertEqual([d.confidence for d in cross], [0.9])

    def test_per_class_orders_by_class_id(self) -> None:
        dets = [
            _det(2, 0.95, (0, 0, 10, 10)),
            _det(0, 0.6, (50, 50, 10, 10)),
            _det(0, 0.7, (0, 0, 10, 10)),
        ]
        kept = suppress(dets, 0.5, 0.5)
        self.assertEqual([(d.class_id, d.confidence) for d in kept], [(0, 0.7), (0, 0.6), (2, 0.95)])

    def test_reapplies_conf_threshold(self) -> None:
        dets = [_det(0, 0.4, (0, 0, 10, 10)), _det(1, 0.6, (50, 50, 10, 10))]
        self.assertEqual([d.class_id for d in suppress(dets, 0.5, 0.5)], [1])
        self.assertEqual([d.class_id for d in suppress(dets, 0.5, 0.5, cross_class=True)], [1])

    def test_idempotent(self) -> None:
        rng = np.random.default_rng(4)
        dets = []
        for _ in range(200):
            x, y = rng.integers(0, 90, size=2)
            w, h = rng.integers(5, 30, size=2)
            dets.append(_det(int(rng.integers(0, 3)), float(rng.random()), (int(x), int(y), int(w), int(h))))

        for cross in (False, True):
            once = suppress(dets, 0.3, 0.45, cross_class=cross)
            twice = suppress(once, 0.3, 0.45, cross_class=cross)
            self.assertEqual(twice, once)

    def test_empty(self) -> None:
        self.assertEqual(suppress([], 0.5, 0.5), [])


if __name__ == "__main__":
    unittest.main()
