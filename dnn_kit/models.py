from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Type, TypeVar, Union

import numpy as np

from .backends.base import ForwardExecutor
from .config import InputConfig
from .detection import DetectionLayout, decode_detections, resolve_layout
from .postprocess import decode_classification, decode_keypoints, decode_segmentation
from .preprocess import FramePreprocessor, blob_from_image
from .runtime import InferencePipeline, load_executor
from .types import DetectionResult, Keypoint


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)

M = TypeVar("M", bound="TaskModel")


def _frame_size(frame: np.ndarray) -> Tuple[int, int]:
    if frame is None or not hasattr(frame, "shape") or len(frame.shape) < 2:
        raise TypeError("frame must be a NumPy array shaped (H, W) or (H, W, C).")
    return int(frame.shape[1]), int(frame.shape[0])


class TaskModel:
    """
    A network plus the input parameters used to feed it.

    Task subclasses add one entry point that runs `self.pipeline` and hands the raw
    outputs to a decoder from `postprocess` / `detection`.
    """

    def __init__(
        self,
        executor: ForwardExecutor,
        *,
        input_cfg: Optional[InputConfig] = None,
        preprocessor: FramePreprocessor = blob_from_image,
    ):
        self.pipeline = InferencePipeline(executor, input_cfg=input_cfg, preprocessor=preprocessor)

    @property
    def executor(self) -> ForwardExecutor:
        return self.pipeline.executor

    @property
    def input_cfg(self) -> InputConfig:
        return self.pipeline.input_cfg

    def configure_input(self: M, cfg: InputConfig) -> M:
        self.pipeline.configure_input(cfg)
        return self

    def set_input_params(
        self,
        scale: float = 1.0,
        size: Tuple[int, int] = (0, 0),
        mean: Sequence[float] = (0.0, 0.0, 0.0, 0.0),
        swap_rb: bool = False,
        crop: bool = False,
    ) -> None:
        self.pipeline.set_input_params(scale, size, mean, swap_rb, crop)

    def set_input_size(self: M, size: Tuple[int, int]) -> M:
        self.pipeline.set_input_size(size)
        return self

    def set_input_mean(self: M, mean: Sequence[float]) -> M:
        self.pipeline.set_input_mean(mean)
        return self

    def set_input_scale(self: M, scale: float) -> M:
        self.pipeline.set_input_scale(scale)
        return self

    def set_input_crop(self: M, crop: bool) -> M:
        self.pipeline.set_input_crop(crop)
        return self

    def set_input_swap_rb(self: M, swap_rb: bool) -> M:
        self.pipeline.set_input_swap_rb(swap_rb)
        return self

    def predict(self, frame: np.ndarray) -> List[np.ndarray]:
        """Raw network outputs for `frame`."""
        return self.pipeline.infer(frame)


class ClassificationModel(TaskModel):
    def classify(self, frame: np.ndarray) -> Tuple[int, float]:
        return decode_classification(self.pipeline.infer(frame))


class KeypointsModel(TaskModel):
    def estimate(self, frame: np.ndarray, threshold: float = 0.5) -> List[Keypoint]:
        """
        Keypoints in frame coordinates; index in the list is the keypoint id.
        Heatmap peaks at or below `threshold` come back as (-1, -1).
        """
        frame_w, frame_h = _frame_size(frame)
        outs = self.pipeline.infer(frame)
        return decode_keypoints(outs, frame_w, frame_h, threshold)


class SegmentationModel(TaskModel):
    def segment(self, frame: np.ndarray) -> np.ndarray:
        """uint8 class-id mask at the network's output resolution."""
        return decode_segmentation(self.pipeline.infer(frame))


class DetectionModel(TaskModel):
    """
    Object detector for networks ending in a `DetectionOutput` (SSD-style records) or a
    `Region` (YOLO-style rows) layer.

    The layout is read from the executor when the model is built; any other terminal
    layer raises `UnsupportedLayerError` right away.
    """

    def __init__(
        self,
        executor: ForwardExecutor,
        *,
        input_cfg: Optional[InputConfig] = None,
        preprocessor: FramePreprocessor = blob_from_image,
        nms_across_classes: bool = False,
    ):
        super().__init__(executor, input_cfg=input_cfg, preprocessor=preprocessor)
        self.layout: DetectionLayout = resolve_layout(executor.terminal_layer_type())
        self.nms_across_classes = nms_across_classes
        logger.debug("Detection layout: %s", self.layout.value)

    def set_nms_across_classes(self, value: bool) -> "DetectionModel":
        self.nms_across_classes = bool(value)
        return self

    def get_nms_across_classes(self) -> bool:
        return self.nms_across_classes

    def detect(
        self,
        frame: np.ndarray,
        conf_threshold: float = 0.5,
        nms_threshold: float = 0.0,
    ) -> DetectionResult:
        """
        Detect objects in `frame`.

        Boxes are in frame pixels, except for networks with an `im_info` input, whose boxes
        are in the resized input's pixels. `nms_threshold=0` disables NMS.
        """

        frame_w, frame_h = _frame_size(frame)
        outs = self.pipeline.infer(frame)

        if self.pipeline.uses_im_info:
            frame_w, frame_h = self.input_cfg.size

        return decode_detections(
            outs,
            self.layout,
            frame_w,
            frame_h,
            conf_threshold=conf_threshold,
            nms_threshold=nms_threshold,
            nms_across_classes=self.nms_across_classes,
        )


TASK_MODELS = {
    "classification": ClassificationModel,
    "keypoints": KeypointsModel,
    "segmentation": SegmentationModel,
    "detection": DetectionModel,
}


def load_model(
    task: str,
    model_path: PathLike,
    config_path: Optional[PathLike] = None,
    *,
    input_cfg: Optional[InputConfig] = None,
    nms_across_classes: bool = False,
    **backend_kwargs: Any,
) -> TaskModel:
    """
    Create a task model for a network on disk.

    Typical usage:
        model = load_model("detection", "models/yolov4-tiny.weights", "models/yolov4-tiny.cfg")
        model.set_input_params(scale=1 / 255.0, size=(416, 416), swap_rb=True)
        result = model.detect(frame, conf_threshold=0.5, nms_threshold=0.4)

    Extra keyword arguments go to `runtime.load_executor` (backend choice and options).
    """

    try:
        model_cls: Type[TaskModel] = TASK_MODELS[task.lower()]
    except KeyError:
        raise ValueError(f"Unknown task {task!r}; expected one of {sorted(TASK_MODELS)}") from None

    executor = load_executor(model_path, config_path, **backend_kwargs)
    if model_cls is DetectionModel:
        return DetectionModel(executor, input_cfg=input_cfg, nms_across_classes=nms_across_classes)
    return model_cls(executor, input_cfg=input_cfg)
