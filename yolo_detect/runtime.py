from __future__ import annotations

import asyncio
import functools
import logging
import tempfile
import threading
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import requests

from .backends import InferenceEngine, OnnxRuntimeEngine, OnnxRuntimeEngineConfig
from .class_names import ClassNameResolver
from .config import DetectorConfig
from .errors import LoadError, ModelNotLoadedError, PreprocessError
from .postprocess import YoloPostConfig, YoloPostprocessor
from .preprocess import ImageLike, ImagePreprocessor, read_image
from .types import Detection

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Walk up from `start` (default: cwd) to the first directory holding one of
    `markers`. Falls back to the starting directory when nothing matches.
    """

    here = (Path.cwd() if start is None else Path(start)).resolve()
    if here.is_file():
        here = here.parent

    for directory in (here, *here.parents):
        if any((directory / marker).exists() for marker in markers):
            return directory
    return here


def _is_url(ref: PathLike) -> bool:
    return str(ref).startswith(("http://", "https://"))


def _remove_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove downloaded model %s: %s", path, e)
    else:
        logger.debug("Removed downloaded model %s", path)


def _download_model(url: str, suffix: str, timeout: float) -> Path:
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise LoadError(f"Failed to download model from URL: {url}") from e

    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as f:
        f.write(resp.content)
        target = Path(f.name)
    logger.info("Downloaded model %s to %s (%d bytes)", url, target, len(resp.content))
    return target


def resolve_model_path(
    path: PathLike,
    root: Optional[PathLike] = "auto",
    suffix: str = ".onnx",
    timeout: float = 60.0,
) -> Path:
    """
    Resolve a model reference to a local file.

    - http(s) URLs are downloaded to a temporary file.
    - Absolute paths are returned as-is (must exist).
    - Relative paths resolve against `root` (project root when "auto"); a bare
      resource name is also tried with `suffix` appended.
    """

    ref = str(path)
    if _is_url(ref):
        return _download_model(ref, suffix, timeout)

    p = Path(ref)
    if p.is_absolute():
        if not p.is_file():
            raise LoadError(f"Model file not found: {p}")
        return p

    base = find_project_root() if root == "auto" or root is None else Path(root).resolve()
    candidates = [base / p]
    if suffix and p.suffix != suffix:
        candidates.append(base / p.with_name(p.name + suffix))

    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    raise LoadError(f"Model file not found: {ref} (searched {', '.join(str(c) for c in candidates)})")


def _check_threshold(name: str, value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")
    return float(value)


class YoloPipeline:
    """
    Preprocess (stretch resize) -> inference -> decode/filter/NMS -> labels.

    The pipeline owns its engine. Call `load()` (or use it as a context
    manager) before `detect()`; `unload()` releases the model. Calls into the
    engine are serialized per pipeline instance.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        config: DetectorConfig = DetectorConfig(),
        class_names: Optional[ClassNameResolver] = None,
    ):
        self.engine = engine
        self.config = config
        if class_names is None and config.class_names_path is not None:
            class_names = ClassNameResolver.from_metadata(config.class_names_path)
        self.preprocessor = ImagePreprocessor(config.input_side, config.layout)
        self.post = YoloPostprocessor(
            YoloPostConfig(
                num_classes=config.num_classes,
                conf_threshold=config.confidence_threshold,
                iou_threshold=config.iou_threshold,
                max_detections=config.max_detections,
            ),
            class_names=class_names,
        )
        self._lock = threading.Lock()
        self._downloads: List[Path] = []

    @property
    def is_loaded(self) -> bool:
        return self.engine.is_loaded

    def load(self, model_path: Optional[PathLike] = None, root: Optional[PathLike] = "auto") -> "YoloPipeline":
        ref = model_path if model_path is not None else self.config.model_path
        if ref is None:
            raise LoadError("No model path given and config.model_path is not set.")
        resolved = resolve_model_path(ref, root=root)
        downloaded = _is_url(ref)
        try:
            with self._lock:
                self.engine.load(resolved)
        except Exception:
            if downloaded:
                _remove_file(resolved)
            raise

        # Earlier downloads are no longer referenced by the engine.
        stale, self._downloads = self._downloads, ([resolved] if downloaded else [])
        for path in stale:
            _remove_file(path)
        return self

    def unload(self) -> None:
        with self._lock:
            self.engine.unload()
        for path in self._downloads:
            _remove_file(path)
        self._downloads = []

    def __enter__(self) -> "YoloPipeline":
        if not self.is_loaded:
            self.load()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unload()

    def detect(
        self,
        image: ImageLike,
        confidence_threshold: Optional[float] = None,
        iou_threshold: Optional[float] = None,
    ) -> List[Detection]:
        """
        Detect objects in an OpenCV-style image (BGR/BGRA/gray array or path).

        Returns detections in original image pixels, confidence-descending.
        An empty list means nothing passed the thresholds.
        """

        conf = _check_threshold(
            "confidence_threshold",
            self.config.confidence_threshold if confidence_threshold is None else confidence_threshold,
        )
        iou_thr = _check_threshold(
            "iou_threshold",
            self.config.iou_threshold if iou_threshold is None else iou_threshold,
        )

        if not self.is_loaded:
            raise ModelNotLoadedError("Model not loaded. Call load() first.")

        if isinstance(image, (str, Path)):
            image = read_image(image)
        if image is None or not hasattr(image, "shape") or image.ndim < 2:
            raise PreprocessError("image must be a NumPy array (H, W[, C]) or a path.")
        orig_h, orig_w = image.shape[:2]

        blob = self.preprocessor(image)
        with self._lock:
            preds = self.engine.predict(blob)

        return self.post.process(np.asarray(preds), (orig_w, orig_h), conf_threshold=conf, iou_threshold=iou_thr)

    async def detect_async(
        self,
        image: ImageLike,
        confidence_threshold: Optional[float] = None,
        iou_threshold: Optional[float] = None,
    ) -> List[Detection]:
        """Run `detect` in the default executor so the event loop is not blocked."""
        loop = asyncio.get_running_loop()
        call = functools.partial(self.detect, image, confidence_threshold, iou_threshold)
        return await loop.run_in_executor(None, call)

    def __call__(self, image: ImageLike) -> List[Detection]:
        return self.detect(image)


def load_pipeline(
    model_path: Optional[PathLike] = None,
    *,
    config: Optional[DetectorConfig] = None,
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
) -> YoloPipeline:
    """
    Build an onnxruntime-backed pipeline and load its model.

        pipe = load_pipeline("models/yolo11n.onnx")
        detections = pipe.detect(cv2.imread("street.jpg"))
    """

    cfg = config if config is not None else DetectorConfig()
    engine = OnnxRuntimeEngine(
        OnnxRuntimeEngineConfig(providers=onnx_providers, intra_op_num_threads=cfg.intra_op_num_threads)
    )
    pipeline = YoloPipeline(engine, cfg)
    pipeline.load(model_path, root=root)
    return pipeline
