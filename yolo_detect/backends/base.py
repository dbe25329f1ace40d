from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Protocol, Union, runtime_checkable

import numpy as np

from ..errors import InferenceError, ModelNotLoadedError

PathLike = Union[str, Path]


@runtime_checkable
class InferenceEngine(Protocol):
    """
    Black box mapping a preprocessed input tensor to the raw head output.

    One loaded handle may be reused for many `predict` calls but is not
    assumed safe for overlapping calls; callers serialize access.
    """

    @property
    def is_loaded(self) -> bool:
        ...

    def load(self, model_path: PathLike) -> None:
        ...

    def unload(self) -> None:
        ...

    def predict(self, input_tensor: np.ndarray) -> np.ndarray:
        ...


class CallableEngine:
    """
    Wraps a plain `fn(input_tensor) -> output` as an engine.

    Useful for custom runtimes and for tests. `load` only records the path;
    exceptions raised by `fn` surface as InferenceError.
    """

    def __init__(self, fn: Callable[[np.ndarray], np.ndarray], *, loaded: bool = True):
        self._fn = fn
        self._loaded = loaded
        self.model_path: Optional[Path] = None

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self, model_path: PathLike) -> None:
        self.model_path = Path(model_path)
        self._loaded = True

    def unload(self) -> None:
        self._loaded = False

    def predict(self, input_tensor: np.ndarray) -> np.ndarray:
        if not self._loaded:
            raise ModelNotLoadedError("Engine not loaded. Call load() first.")
        try:
            out = self._fn(input_tensor)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e
        return np.asarray(out)
