from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..errors import InferenceError, LoadError, ModelNotLoadedError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeEngineConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers; None lets ORT pick its default (CPU)
    - input_name/output_name: override auto-selected I/O names if needed
    - intra_op_num_threads: CPU threads per session; 0 lets ORT decide
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    intra_op_num_threads: int = 2


class OnnxRuntimeEngine:
    """
    ONNX Runtime engine with an explicit load/unload lifecycle.

    Expects a float32 blob, typically shaped (1, 3, 640, 640).
    Returns the primary output as a NumPy array.
    """

    def __init__(self, cfg: OnnxRuntimeEngineConfig = OnnxRuntimeEngineConfig()):
        self.cfg = cfg
        self.session = None
        self.model_path: Optional[Path] = None
        self.input_name: Optional[str] = None
        self.output_name: Optional[str] = None

    @property
    def is_loaded(self) -> bool:
        return self.session is not None

    def load(self, model_path: PathLike) -> None:
        try:
            import onnxruntime as ort  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise LoadError(
                "onnxruntime is required for the ONNX engine. Install it with `pip install onnxruntime`."
            ) from e

        path = Path(model_path)
        if not path.is_file():
            raise LoadError(f"Model file not found: {path}")

        sess_opts = ort.SessionOptions()
        if self.cfg.intra_op_num_threads > 0:
            sess_opts.intra_op_num_threads = self.cfg.intra_op_num_threads
        providers = list(self.cfg.providers) if self.cfg.providers is not None else None
        try:
            session = ort.InferenceSession(str(path), sess_options=sess_opts, providers=providers)
        except Exception as e:
            raise LoadError(f"Failed to load model {path}: {e}") from e

        self.session = session
        self.model_path = path
        self.input_name = self.cfg.input_name or session.get_inputs()[0].name
        # If output_name not provided, pick first output.
        self.output_name = self.cfg.output_name or session.get_outputs()[0].name
        logger.info("Loaded ONNX model %s (input=%s, output=%s)", path, self.input_name, self.output_name)

    def unload(self) -> None:
        if self.session is not None:
            logger.info("Unloaded ONNX model %s", self.model_path)
        self.session = None
        self.input_name = None
        self.output_name = None

    def predict(self, input_tensor: np.ndarray) -> np.ndarray:
        if self.session is None:
            raise ModelNotLoadedError("ONNX model not loaded. Call load() first.")

        inputs: Dict[str, Any] = {self.input_name: input_tensor}
        try:
            outputs = self.session.run([self.output_name], inputs)
        except Exception as e:
            raise InferenceError(f"ONNX Runtime inference failed: {e}") from e
        return outputs[0]
