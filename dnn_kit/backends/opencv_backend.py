from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenCVDnnBackendConfig:
    """
    Configuration for OpenCV DNN inference.

    - framework: passed to `cv2.dnn.readNet` when the format can't be guessed from the file names
    """

    framework: str = ""


class OpenCVDnnBackend:
    """
    Forward executor backed by `cv2.dnn.Net`.

    Reads Caffe, Darknet, TensorFlow, ONNX, ... models through `cv2.dnn.readNet`, which
    also gives access to layer types (needed to pick the detection output layout).
    """

    def __init__(
        self,
        model_path: PathLike,
        config_path: Optional[PathLike] = None,
        cfg: OpenCVDnnBackendConfig = OpenCVDnnBackendConfig(),
        *,
        net: Optional[object] = None,
    ):
        try:
            import cv2  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("OpenCV is required for the OpenCV DNN backend. Install with `pip install opencv-python`.") from e

        self._cv2 = cv2
        if net is not None:
            self.model_path = None
            self.net = net
        else:
            self.model_path = Path(model_path)
            if not self.model_path.exists():
                raise FileNotFoundError(str(self.model_path))
            config = ""
            if config_path is not None:
                config_file = Path(config_path)
                if not config_file.exists():
                    raise FileNotFoundError(str(config_file))
                config = str(config_file)
            self.net = cv2.dnn.readNet(str(self.model_path), config, cfg.framework)

        if self.terminal_layer_type() == "Region":
            # cv2 Python bindings cannot zero a layer param, so Region keeps its own NMS
            logger.warning(
                "Region output layer keeps its built-in NMS; boxes may already be suppressed before detect()"
            )

    @classmethod
    def from_net(cls, net: object) -> "OpenCVDnnBackend":
        """Wrap an already loaded `cv2.dnn.Net`."""
        return cls(None, net=net)  # type: ignore[arg-type]

    def set_input(self, blob: np.ndarray, name: Optional[str] = None) -> None:
        if name is None:
            self.net.setInput(blob)
        else:
            self.net.setInput(blob, name)

    def forward(self, output_names: Sequence[str]) -> List[np.ndarray]:
        outs = self.net.forward(list(output_names))
        return [np.asarray(o) for o in outs]

    def has_input(self, name: str) -> bool:
        return self.net.getLayer(0).outputNameToIndex(name) != -1

    def terminal_layer_type(self) -> str:
        names = self.net.getLayerNames()
        if len(names) == 0:
            return ""
        last_id = self.net.getLayerId(names[-1])
        return self.net.getLayer(last_id).type

    def output_names(self) -> List[str]:
        return list(self.net.getUnconnectedOutLayersNames())

    def input_shape(self) -> Optional[Tuple[int, ...]]:
        try:
            in_shapes, _ = self.net.getLayerShapes([], 0)
        except self._cv2.error as e:
            logger.debug("Network input shape not available: %s", e)
            return None
        if len(in_shapes) == 0:
            return None
        return tuple(int(v) for v in np.asarray(in_shapes[0]).reshape(-1))
