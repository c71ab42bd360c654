from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np


class ForwardExecutor(Protocol):
    """
    What the inference pipeline needs from a loaded network.

    `output_names()` is read once when a pipeline is built; `forward` returns one array
    per requested name, in request order.
    """

    def set_input(self, blob: np.ndarray, name: Optional[str] = None) -> None:
        ...

    def forward(self, output_names: Sequence[str]) -> List[np.ndarray]:
        ...

    def has_input(self, name: str) -> bool:
        ...

    def terminal_layer_type(self) -> str:
        ...

    def output_names(self) -> List[str]:
        ...

    def input_shape(self) -> Optional[Tuple[int, ...]]:
        ...
