import json
import os
from typing import Any

import yaml


def save_yaml(data: dict[str, Any], path: str) -> None:
    with open(path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)


def read_json(path: str) -> dict[str, Any] | list[Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(data: dict[str, Any] | list[Any], path: str, indent: int | None = None) -> None:
    """Write ``data`` via a temporary file and rename, so readers never see a partial blob."""
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent)
    os.replace(tmp_path, path)
