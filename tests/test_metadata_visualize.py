import tempfile
import unittest
from pathlib import Path

import numpy as np

from dnn_kit.config import InputConfig
from dnn_kit.metadata import load_class_names
from dnn_kit.preprocess import blob_from_image
from dnn_kit.types import Detection, Keypoint, Rect
from dnn_kit.visualize import color_for_class_id, colorize_mask, draw_detections, draw_keypoints


class TestLoadClassNames(unittest.TestCase):
    def _write(self, name: str, text: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_plain_label_list(self) -> None:
        path = self._write("coco.names", "person\nbicycle\n\ncar\n")
        self.assertEqual(load_class_names(path), {0: "person", 1: "bicycle", 2: "car"})

    def test_names_block(self) -> None:
        path = self._write(
            "metadata.yaml",
            "description: demo\nnames:\n  0: person\n  1: 'traffic light'\nnc: 2\n",
        )
        self.assertEqual(load_class_names(path), {0: "person", 1: "traffic light"})


class TestVisualize(unittest.TestCase):
    def test_palette_is_deterministic(self) -> None:
        self.assertEqual(color_for_class_id(0), (255, 56, 56))
        self.assertEqual(color_for_class_id(123), color_for_class_id(123))

    def test_colorize_mask(self) -> None:
        mask = np.array([[0, 1], [2, 0]], dtype=np.uint8)
        out = colorize_mask(mask)
        self.assertEqual(out.shape, (2, 2, 3))
        self.assertEqual(tuple(out[0, 1]), color_for_class_id(1))
        self.assertEqual(tuple(out[1, 1]), color_for_class_id(0))

    def test_draw_detections_returns_copy(self) -> None:
        img = np.zeros((50, 60, 3), dtype=np.uint8)
        out = draw_detections(img, [Detection(class_id=2, confidence=0.9, box=Rect(5, 20, 30, 20))])
        self.assertEqual(out.shape, img.shape)
        self.assertFalse(img.any())
        self.assertTrue(out.any())

    def test_draw_keypoints_skips_missing(self) -> None:
        img = np.zeros((20, 20, 3), dtype=np.uint8)
        out = draw_keypoints(img, [Keypoint(-1.0, -1.0)], pairs=[(0, 0)])
        self.assertFalse(out.any())
        out = draw_keypoints(img, [Keypoint(10.0, 10.0)])
        self.assertTrue(out[10, 10].any())


class TestBlobFromImage(unittest.TestCase):
    def test_mean_scale_and_size(self) -> None:
        img = np.full((10, 20, 3), 100, dtype=np.uint8)
        blob = blob_from_image(img, InputConfig(scale=0.5, size=(8, 4), mean=(10, 10, 10)))
        self.assertEqual(blob.shape, (1, 3, 4, 8))
        self.assertTrue(np.allclose(blob, 45.0))


if __name__ == "__main__":
    unittest.main()
