from __future__ import annotations


class DnnKitError(Exception):
    """Base class for errors raised by dnn_kit."""


class ConfigurationError(DnnKitError, ValueError):
    """Input parameters are missing or invalid (e.g. no input size before inference)."""


class ShapeError(DnnKitError, ValueError):
    """Network outputs do not have the count/rank a decoder requires."""


class UnsupportedLayerError(DnnKitError, NotImplementedError):
    """The network's terminal layer is not one of the known detection output formats."""

    def __init__(self, layer_type: str):
        self.layer_type = layer_type
        super().__init__(f'Unknown output layer type: "{layer_type}"')
