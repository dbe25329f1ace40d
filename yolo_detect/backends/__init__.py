"""
Inference engines for yolo_detect.

Engines live in their own subpackage so pre/post-processing can be used
without an inference runtime installed. The onnxruntime import is deferred
until a model is loaded.
"""

from __future__ import annotations

from .base import CallableEngine, InferenceEngine
from .onnxruntime_backend import OnnxRuntimeEngine, OnnxRuntimeEngineConfig

__all__ = [
    "CallableEngine",
    "InferenceEngine",
    "OnnxRuntimeEngine",
    "OnnxRuntimeEngineConfig",
]
