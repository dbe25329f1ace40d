from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .backends import OnnxRuntimeEngine, OnnxRuntimeEngineConfig
from .class_names import ClassNameResolver
from .config import load_config
from .errors import YoloDetectError
from .runtime import YoloPipeline
from .serialize import detections_to_json


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="yolo-detect", description="Run YOLO object detection on an image.")
    p.add_argument("image", help="Path to the input image.")
    p.add_argument("--model", default=None, help="Model path, resource name, or http(s) URL.")
    p.add_argument("--config", default=None, help="Detector config JSON.")
    p.add_argument("--conf", type=float, default=None, help="Confidence threshold (default from config).")
    p.add_argument("--iou", type=float, default=None, help="NMS IoU threshold (default from config).")
    p.add_argument("--names", default=None, help="metadata.yaml with a `names:` mapping.")
    p.add_argument("--indent", type=int, default=2)
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def main(argv: Optional[Sequence[str]] = None, engine=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        cfg = load_config(args.config)
        if engine is None:
            engine = OnnxRuntimeEngine(OnnxRuntimeEngineConfig(intra_op_num_threads=cfg.intra_op_num_threads))
        class_names = ClassNameResolver.from_metadata(args.names) if args.names else None
        pipeline = YoloPipeline(engine, cfg, class_names=class_names)
        if not pipeline.is_loaded:
            pipeline.load(args.model)
        try:
            detections = pipeline.detect(args.image, args.conf, args.iou)
        finally:
            pipeline.unload()
    except (YoloDetectError, ValueError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(detections_to_json(detections, indent=args.indent))
    return 0


if __name__ == "__main__":
    sys.exit(main())
