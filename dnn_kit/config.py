from __future__ import annotations

import json
import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple

from .errors import ConfigurationError


def _as_mean(values: Sequence[float]) -> Tuple[float, float, float, float]:
    vals = [float(v) for v in values]
    if len(vals) > 4:
        raise ConfigurationError(f"mean accepts at most 4 channels, got {len(vals)}")
    # Missing channels are zero, like a partially filled cv::Scalar.
    vals.extend([0.0] * (4 - len(vals)))
    return vals[0], vals[1], vals[2], vals[3]


@dataclass
class InputConfig:
    """
    Parameters used to turn a frame into the network input blob.

    - scale: multiplier applied after mean subtraction
    - size: (width, height) the frame is resized to; (0, 0) means unset
    - mean: per-channel values subtracted from the frame
    - swap_rb: swap the first and last channels (BGR <-> RGB)
    - crop: resize preserving aspect ratio then center-crop, instead of stretching
    """

    scale: float = 1.0
    size: Tuple[int, int] = (0, 0)
    mean: Tuple[float, float, float, float] = field(default=(0.0, 0.0, 0.0, 0.0))
    swap_rb: bool = False
    crop: bool = False

    def __post_init__(self) -> None:
        self.scale = float(self.scale)
        self.size = (int(self.size[0]), int(self.size[1]))
        self.mean = _as_mean(self.mean)
        if self.size[0] < 0 or self.size[1] < 0:
            raise ConfigurationError(f"size must be non-negative, got {self.size}")

    def replace(self, **changes: Any) -> "InputConfig":
        """Validated copy with `changes` applied."""
        return dataclasses.replace(self, **changes)

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    def has_size(self) -> bool:
        return self.size[0] > 0 and self.size[1] > 0

    def require_size(self) -> Tuple[int, int]:
        if not self.has_size():
            raise ConfigurationError("Input size not specified")
        return self.size

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "InputConfig":
        allowed = {"scale", "size", "mean", "swap_rb", "crop"}
        unknown = sorted(set(payload.keys()) - allowed)
        if unknown:
            raise ConfigurationError(f"Unknown input config keys: {unknown}")

        kwargs: Dict[str, Any] = {}
        if "scale" in payload:
            scale = payload["scale"]
            if isinstance(scale, bool) or not isinstance(scale, (int, float)):
                raise ConfigurationError("scale must be a number")
            kwargs["scale"] = float(scale)
        if "size" in payload:
            size = payload["size"]
            if (
                not isinstance(size, (list, tuple))
                or len(size) != 2
                or any(isinstance(v, bool) or not isinstance(v, int) for v in size)
            ):
                raise ConfigurationError("size must be a [width, height] pair of integers")
            kwargs["size"] = (size[0], size[1])
        if "mean" in payload:
            mean = payload["mean"]
            if isinstance(mean, (int, float)) and not isinstance(mean, bool):
                mean = [mean]
            if not isinstance(mean, (list, tuple)) or any(
                isinstance(v, bool) or not isinstance(v, (int, float)) for v in mean
            ):
                raise ConfigurationError("mean must be a number or a list of numbers")
            kwargs["mean"] = tuple(mean)
        for key in ("swap_rb", "crop"):
            if key in payload:
                if not isinstance(payload[key], bool):
                    raise ConfigurationError(f"{key} must be a boolean")
                kwargs[key] = payload[key]
        return cls(**kwargs)


def load_input_config(path: Path) -> InputConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid input config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Input config must be a JSON object")
    return InputConfig.from_dict(payload)
