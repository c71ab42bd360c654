from __future__ import annotations

from pathlib import Path
from typing import Dict, Union


def load_class_names(path: Union[str, Path]) -> Dict[int, str]:
    """
    Load class labels for decoded class ids.

    Two formats are understood:

    - plain label lists (`coco.names`, `classes.txt`), one label per line, id = line index
      among non-empty lines:

        person
        bicycle

    - a lightweight `metadata.yaml` mapping, as written by common YOLO exports:

        names:
          0: person
          1: bicycle
          ...

    The YAML form is parsed by hand to avoid adding a PyYAML dependency.
    """

    lines = Path(path).read_text(encoding="utf-8").splitlines()
    if any(line.strip() == "names:" for line in lines):
        return _parse_names_block(lines)
    labels = [line.strip() for line in lines if line.strip()]
    return {i: label for i, label in enumerate(labels)}


def _parse_names_block(lines) -> Dict[int, str]:
    names: Dict[int, str] = {}
    in_names = False

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue

        # Parse "id: label"
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            # next top-level key ends the block
            if not raw.startswith((" ", "\t")):
                break
            continue
        names[int(left)] = right

    return names
