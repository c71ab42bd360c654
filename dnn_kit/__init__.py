"""
Task-level decoding for image networks.

Turns raw forward-pass outputs into class labels, keypoints, segmentation masks or
detection boxes. Decoders work on plain NumPy arrays; OpenCV and the optional
inference runtimes are only imported by the preprocessing, backend and drawing code
that needs them.
"""

from .config import InputConfig, load_input_config
from .detection import DetectionLayout, decode_detections, resolve_layout
from .errors import ConfigurationError, DnnKitError, ShapeError, UnsupportedLayerError
from .metadata import load_class_names
from .models import (
    ClassificationModel,
    DetectionModel,
    KeypointsModel,
    SegmentationModel,
    TaskModel,
    load_model,
)
from .nms import nms_boxes, suppress
from .postprocess import decode_classification, decode_keypoints, decode_segmentation
from .preprocess import blob_from_image
from .runtime import InferencePipeline, find_project_root, load_executor, resolve_path
from .types import Detection, DetectionResult, Keypoint, Rect
from .visualize import colorize_mask, draw_detections, draw_keypoints

__all__ = [
    "InputConfig",
    "load_input_config",
    "DetectionLayout",
    "decode_detections",
    "resolve_layout",
    "ConfigurationError",
    "DnnKitError",
    "ShapeError",
    "UnsupportedLayerError",
    "load_class_names",
    "ClassificationModel",
    "DetectionModel",
    "KeypointsModel",
    "SegmentationModel",
    "TaskModel",
    "load_model",
    "nms_boxes",
    "suppress",
    "decode_classification",
    "decode_keypoints",
    "decode_segmentation",
    "blob_from_image",
    "InferencePipeline",
    "find_project_root",
    "load_executor",
    "resolve_path",
    "Detection",
    "DetectionResult",
    "Keypoint",
    "Rect",
    "colorize_mask",
    "draw_detections",
    "draw_keypoints",
]
