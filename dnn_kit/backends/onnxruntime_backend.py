from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np


PathLike = Union[str, Path]

TERMINAL_LAYER_METADATA_KEY = "terminal_layer_type"


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name: override the auto-selected primary input
    - output_names: override the auto-selected outputs (all graph outputs, in graph order)
    - terminal_layer_type: detection layout tag ("DetectionOutput" or "Region"); ONNX graphs
      don't carry one, so it falls back to the model's custom metadata
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_names: Optional[Sequence[str]] = None
    terminal_layer_type: Optional[str] = None


class OnnxRuntimeBackend:
    """
    ONNX Runtime forward executor.

    Expects an NCHW float32 blob, typically shaped (1, 3, H, W). Extra named inputs
    (e.g. "im_info") are fed alongside it on the next `forward`.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.cfg = cfg
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self._inputs = {i.name: i for i in self.session.get_inputs()}
        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        self._pending: Dict[str, Any] = {}

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    def set_input(self, blob: np.ndarray, name: Optional[str] = None) -> None:
        self._pending[name or self.input_name] = blob

    def forward(self, output_names: Sequence[str]) -> List[np.ndarray]:
        inputs = self._pending
        self._pending = {}
        return list(self.session.run(list(output_names), inputs))

    def has_input(self, name: str) -> bool:
        return name in self._inputs

    def terminal_layer_type(self) -> str:
        if self.cfg.terminal_layer_type is not None:
            return self.cfg.terminal_layer_type
        meta = self.session.get_modelmeta().custom_metadata_map
        return meta.get(TERMINAL_LAYER_METADATA_KEY, "")

    def output_names(self) -> List[str]:
        if self.cfg.output_names is not None:
            return list(self.cfg.output_names)
        return [o.name for o in self.session.get_outputs()]

    def input_shape(self) -> Optional[Tuple[int, ...]]:
        shape = self._inputs[self.input_name].shape
        # Dynamic axes come back as strings or None.
        if not all(isinstance(d, int) for d in shape):
            return None
        return tuple(shape)
