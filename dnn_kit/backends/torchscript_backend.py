from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np


PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - half: cast float inputs to float16 (only if the model expects it)
    - output_names: names given to the model's outputs, by position
    - extra_input_names: named inputs passed positionally after the image blob (e.g. ["im_info"])
    - terminal_layer_type: detection layout tag ("DetectionOutput" or "Region")
    - input_shape: declared (N, C, H, W) of the image input, if fixed
    """

    device: str = "cpu"
    half: bool = False
    output_names: Sequence[str] = ("output",)
    extra_input_names: Sequence[str] = ()
    terminal_layer_type: str = ""
    input_shape: Optional[Tuple[int, ...]] = None


class TorchScriptBackend:
    """
    TorchScript forward executor using `torch.jit.load`.

    This is the most "plug-and-play" Torch option because it doesn't require model
    class code (unlike many raw .pt weight checkpoints).
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.cfg = cfg
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        self.half = cfg.half

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model
        self._blob: Optional[np.ndarray] = None
        self._extra: Dict[str, np.ndarray] = {}

    def _to_tensor(self, arr: np.ndarray) -> Any:
        torch = self._torch
        x = torch.as_tensor(arr, device=self.device)
        if self.half:
            x = x.half()
        else:
            x = x.float()
        return x.contiguous()

    def set_input(self, blob: np.ndarray, name: Optional[str] = None) -> None:
        if name is None:
            self._blob = blob
            return
        if name not in self.cfg.extra_input_names:
            raise KeyError(f"Model has no input named {name!r}")
        self._extra[name] = blob

    def forward(self, output_names: Sequence[str]) -> List[np.ndarray]:
        torch = self._torch
        if self._blob is None:
            raise RuntimeError("set_input() must be called before forward()")

        args = [self._to_tensor(self._blob)]
        for name in self.cfg.extra_input_names:
            if name not in self._extra:
                raise RuntimeError(f"Input {name!r} was not set")
            args.append(self._to_tensor(self._extra[name]))
        self._extra = {}

        with torch.no_grad():
            y = self.model(*args)

        if not isinstance(y, (tuple, list)):
            y = (y,)

        known = list(self.cfg.output_names)
        outs: List[np.ndarray] = []
        for name in output_names:
            t = y[known.index(name)]
            if hasattr(t, "detach"):
                t = t.detach()
            outs.append(t.to("cpu").float().numpy())
        return outs

    def has_input(self, name: str) -> bool:
        return name in self.cfg.extra_input_names

    def terminal_layer_type(self) -> str:
        return self.cfg.terminal_layer_type

    def output_names(self) -> List[str]:
        return list(self.cfg.output_names)

    def input_shape(self) -> Optional[Tuple[int, ...]]:
        return self.cfg.input_shape
