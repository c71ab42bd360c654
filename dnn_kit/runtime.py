from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .backends.base import ForwardExecutor
from .config import InputConfig
from .preprocess import FramePreprocessor, blob_from_image


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)

# Two-stage detectors (Faster-RCNN, R-FCN) take the input size through this extra input.
IM_INFO = "im_info"
IM_INFO_SCALE = 1.6


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery.

    Useful when models live next to the project (e.g. `A/models`) and are referenced relatively.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against:
      - `root` if provided
      - project root (auto) otherwise
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class InferencePipeline:
    """
    Preprocess -> forward, shared by every task model.

    Output names and whether the network takes an `im_info` input are read from the
    executor once, here. The input config is the only state that changes between calls.
    """

    def __init__(
        self,
        executor: ForwardExecutor,
        *,
        input_cfg: Optional[InputConfig] = None,
        preprocessor: FramePreprocessor = blob_from_image,
    ):
        self.executor = executor
        self.preprocessor = preprocessor
        cfg = input_cfg.replace() if input_cfg is not None else InputConfig()

        if not cfg.has_size():
            shape = executor.input_shape()
            if shape is not None and len(shape) == 4 and shape[2] > 0 and shape[3] > 0:
                cfg = cfg.replace(size=(int(shape[3]), int(shape[2])))
                logger.debug("Input size taken from network: %s", cfg.size)
        # Always a private copy; callers may share one config between models.
        self.input_cfg = cfg

        self.output_names: Tuple[str, ...] = tuple(executor.output_names())
        self.uses_im_info = bool(executor.has_input(IM_INFO))
        self.last_blob: Optional[np.ndarray] = None
        logger.debug("Network outputs: %s (im_info input: %s)", list(self.output_names), self.uses_im_info)

    # ------------------------------------------------------------------ #
    # Input parameters
    # ------------------------------------------------------------------ #
    def configure_input(self, cfg: InputConfig) -> "InferencePipeline":
        self.input_cfg = cfg.replace()
        return self

    def set_input_params(
        self,
        scale: float = 1.0,
        size: Tuple[int, int] = (0, 0),
        mean: Sequence[float] = (0.0, 0.0, 0.0, 0.0),
        swap_rb: bool = False,
        crop: bool = False,
    ) -> "InferencePipeline":
        return self.configure_input(InputConfig(scale=scale, size=size, mean=mean, swap_rb=swap_rb, crop=crop))

    def set_input_size(self, size: Tuple[int, int]) -> "InferencePipeline":
        self.input_cfg = self.input_cfg.replace(size=size)
        return self

    def set_input_mean(self, mean: Sequence[float]) -> "InferencePipeline":
        self.input_cfg = self.input_cfg.replace(mean=mean)
        return self

    def set_input_scale(self, scale: float) -> "InferencePipeline":
        self.input_cfg = self.input_cfg.replace(scale=scale)
        return self

    def set_input_crop(self, crop: bool) -> "InferencePipeline":
        self.input_cfg = self.input_cfg.replace(crop=crop)
        return self

    def set_input_swap_rb(self, swap_rb: bool) -> "InferencePipeline":
        self.input_cfg = self.input_cfg.replace(swap_rb=swap_rb)
        return self

    # ------------------------------------------------------------------ #
    # Inference
    # ------------------------------------------------------------------ #
    def infer(self, frame: np.ndarray) -> List[np.ndarray]:
        """
        Run one frame through the network and return the raw outputs, one per output name.
        """

        width, height = self.input_cfg.require_size()

        blob = self.preprocessor(frame, self.input_cfg)
        self.last_blob = blob
        self.executor.set_input(blob)

        if self.uses_im_info:
            im_info = np.array([[height, width, IM_INFO_SCALE]], dtype=np.float32)
            self.executor.set_input(im_info, IM_INFO)

        return list(self.executor.forward(self.output_names))

    predict = infer


def load_executor(
    model_path: PathLike,
    config_path: Optional[PathLike] = None,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    opencv_framework: str = "",
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_names: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
    torch_half: bool = False,
    torch_output_names: Sequence[str] = ("output",),
    torch_extra_input_names: Sequence[str] = (),
    torch_input_shape: Optional[Tuple[int, ...]] = None,
    terminal_layer_type: Optional[str] = None,
) -> ForwardExecutor:
    """
    Open a model on disk with a forward executor.

    Args:
        model_path: weights/model file; relative paths resolve against project root by default
        config_path: optional network description (e.g. Caffe prototxt, Darknet cfg), OpenCV backend only
        backend: "opencv", "onnxruntime" or "torchscript"; None infers it from the extension
            (.onnx -> onnxruntime, .torchscript/.ts/.pt -> torchscript, anything else -> opencv)
        terminal_layer_type: detection layout tag for backends whose graphs don't carry layer types
    """

    resolved = resolve_path(model_path, root=root)
    resolved_config = resolve_path(config_path, root=root) if config_path is not None else None

    chosen = backend
    if chosen is None:
        suffix = resolved.suffix.lower()
        if suffix == ".onnx":
            chosen = "onnxruntime"
        elif suffix in {".torchscript", ".ts", ".pt"}:
            chosen = "torchscript"
        else:
            chosen = "opencv"

    chosen = chosen.lower()
    logger.debug("Loading %s with the %s backend", resolved, chosen)

    if chosen == "opencv":
        from .backends.opencv_backend import OpenCVDnnBackend, OpenCVDnnBackendConfig

        return OpenCVDnnBackend(resolved, resolved_config, OpenCVDnnBackendConfig(framework=opencv_framework))

    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(
            resolved,
            OnnxRuntimeBackendConfig(
                providers=onnx_providers,
                input_name=onnx_input_name,
                output_names=onnx_output_names,
                terminal_layer_type=terminal_layer_type,
            ),
        )

    if chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        return TorchScriptBackend(
            resolved,
            TorchScriptBackendConfig(
                device=torch_device,
                half=torch_half,
                output_names=tuple(torch_output_names),
                extra_input_names=tuple(torch_extra_input_names),
                terminal_layer_type=terminal_layer_type or "",
                input_shape=torch_input_shape,
            ),
        )

    raise ValueError(f"Unsupported backend: {backend!r}")
