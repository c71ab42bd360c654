import importlib.util
import tempfile
import unittest
from unittest import mock
from pathlib import Path

import numpy as np

from dnn_kit.backends import opencv_backend
from dnn_kit.backends.opencv_backend import OpenCVDnnBackend
from dnn_kit.runtime import load_executor


class _FakeLayer:
    def __init__(self, layer_type: str, outputs=()):
        self.type = layer_type
        self._outputs = list(outputs)

    def outputNameToIndex(self, name: str) -> int:
        return self._outputs.index(name) if name in self._outputs else -1


class _FakeNet:
    def __init__(self):
        self.layers = {0: _FakeLayer("Input", ["data", "im_info"]), 1: _FakeLayer("Convolution"), 2: _FakeLayer("Region")}
        self.inputs = []

    def getLayer(self, layer_id):
        return self.layers[layer_id]

    def getLayerNames(self):
        return ["conv1", "detection_out"]

    def getLayerId(self, name):
        return {"conv1": 1, "detection_out": 2}[name]

    def getUnconnectedOutLayersNames(self):
        return ("yolo_16", "yolo_23")

    def setInput(self, blob, name=""):
        self.inputs.append((name, blob))

    def forward(self, names):
        return tuple(np.full((1, 6), float(i)) for i, _ in enumerate(names))

    def getLayerShapes(self, net_input_shape, layer_id):
        return [np.array([1, 3, 416, 320])], [np.array([1, 3, 416, 320])]


class TestOpenCVDnnBackend(unittest.TestCase):
    def setUp(self) -> None:
        self.net = _FakeNet()
        self.backend = OpenCVDnnBackend.from_net(self.net)

    def test_introspection(self) -> None:
        self.assertTrue(self.backend.has_input("im_info"))
        self.assertFalse(self.backend.has_input("other"))
        self.assertEqual(self.backend.terminal_layer_type(), "Region")
        self.assertEqual(self.backend.output_names(), ["yolo_16", "yolo_23"])
        self.assertEqual(self.backend.input_shape(), (1, 3, 416, 320))

    def test_set_input_and_forward(self) -> None:
        blob = np.zeros((1, 3, 4, 4), dtype=np.float32)
        self.backend.set_input(blob)
        self.backend.set_input(np.ones((1, 3), dtype=np.float32), "im_info")
        outs = self.backend.forward(["yolo_16", "yolo_23"])
        self.assertEqual([name for name, _ in self.net.inputs], ["", "im_info"])
        self.assertEqual(len(outs), 2)
        self.assertEqual(float(outs[1][0, 0]), 1.0)

    def test_region_layer_warns_at_load(self) -> None:
        with self.assertLogs("dnn_kit.backends.opencv_backend", level="WARNING") as logs:
            OpenCVDnnBackend.from_net(_FakeNet())
        self.assertIn("Region", logs.output[0])

    def test_other_layers_load_quietly(self) -> None:
        net = _FakeNet()
        net.layers[2] = _FakeLayer("DetectionOutput")
        with mock.patch.object(opencv_backend.logger, "warning") as warn:
            OpenCVDnnBackend.from_net(net)
        warn.assert_not_called()

    def test_missing_model_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            OpenCVDnnBackend(Path(tempfile.gettempdir()) / "dnn_kit_missing.caffemodel")


class TestLoadExecutor(unittest.TestCase):
    def test_unsupported_backend(self) -> None:
        with self.assertRaises(ValueError):
            load_executor("/tmp/model.bin", backend="tflite")


@unittest.skipUnless(importlib.util.find_spec("torch") is not None, "torch not installed")
class TestTorchScriptBackend(unittest.TestCase):
    def test_forward_with_named_extra_input(self) -> None:
        import torch

        from dnn_kit.backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        class TwoStage(torch.nn.Module):
            def forward(self, x, info):
                return x.mean(dim=(2, 3)), info * 2

        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "two_stage.torchscript"
        example = (torch.ones(1, 3, 2, 2), torch.ones(1, 3))
        torch.jit.trace(TwoStage(), example).save(str(path))

        backend = TorchScriptBackend(
            path,
            TorchScriptBackendConfig(
                output_names=("pooled", "info2"),
                extra_input_names=("im_info",),
                terminal_layer_type="DetectionOutput",
            ),
        )
        self.assertTrue(backend.has_input("im_info"))
        self.assertEqual(backend.terminal_layer_type(), "DetectionOutput")

        backend.set_input(np.ones((1, 3, 2, 2), dtype=np.float32))
        backend.set_input(np.array([[2, 3, 1.6]], dtype=np.float32), "im_info")
        info2, pooled = backend.forward(["info2", "pooled"])
        self.assertTrue(np.allclose(pooled, np.ones((1, 3))))
        self.assertTrue(np.allclose(info2, np.array([[4, 6, 3.2]])))


if __name__ == "__main__":
    unittest.main()
