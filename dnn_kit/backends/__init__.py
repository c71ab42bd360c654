"""
Forward executors for dnn_kit.

Backends are kept in a separate module so the decoders stay lightweight and can be
used without installing inference runtimes. Each backend module imports its runtime
lazily.
"""

from __future__ import annotations

from .base import ForwardExecutor

__all__ = ["ForwardExecutor"]
