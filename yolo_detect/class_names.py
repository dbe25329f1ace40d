from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

COCO_CLASSES: Tuple[str, ...] = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck",
    "boat", "traffic light", "fire hydrant", "stop sign", "parking meter", "bench",
    "bird", "cat", "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra",
    "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove",
    "skateboard", "surfboard", "tennis racket", "bottle", "wine glass", "cup",
    "fork", "knife", "spoon", "bowl", "banana", "apple", "sandwich", "orange",
    "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse",
    "remote", "keyboard", "cell phone", "microwave", "oven", "toaster", "sink",
    "refrigerator", "book", "clock", "vase", "scissors", "teddy bear", "hair drier",
    "toothbrush",
)


def _parse_name_entry(line: str) -> Optional[Tuple[int, str]]:
    key, sep, value = line.partition(":")
    key = key.strip()
    if not sep or not key.isdigit():
        return None
    return int(key), value.strip().strip("'\"")


def load_class_names(metadata_path: Union[str, Path]) -> Dict[int, str]:
    """
    Read the `names:` block of an exported model's `metadata.yaml`.

    Entries look like `  0: person`; other top-level keys are skipped, and
    the block ends at the next unindented key. Returns {class_id: label}.
    """

    names: Dict[int, str] = {}
    inside = False

    for raw in Path(metadata_path).read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if not inside:
            inside = line == "names:"
            continue

        entry = _parse_name_entry(line)
        if entry is None:
            if not raw[:1].isspace():
                break
            continue
        class_id, label = entry
        names[class_id] = label

    return names


class ClassNameResolver:
    """
    Maps a class id to its label. Unknown ids resolve to None, never raise.
    """

    def __init__(self, names: Union[Sequence[str], Dict[int, str]] = COCO_CLASSES):
        if isinstance(names, dict):
            self._names: Dict[int, str] = {int(k): str(v) for k, v in names.items()}
        else:
            self._names = {i: str(n) for i, n in enumerate(names)}

    @classmethod
    def from_metadata(cls, metadata_path: Union[str, Path]) -> "ClassNameResolver":
        names = load_class_names(metadata_path)
        if not names:
            raise ValueError(f"No class names found in {metadata_path}")
        return cls(names)

    def __len__(self) -> int:
        return len(self._names)

    def resolve(self, class_id: int) -> Optional[str]:
        return self._names.get(int(class_id))
