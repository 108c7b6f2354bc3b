"""JSON file helpers shared by the wallet store and the ledger."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path


def read_json_list(path: Path) -> list:
    """Return the JSON array stored at *path*, or ``[]`` if the file is absent.

    Raises ``ValueError`` if the file is not a JSON array and ``OSError`` if
    it cannot be read.
    """
    if not path.exists():
        return []
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a JSON array")
    return data


def write_json_atomic(path: Path, data: object) -> None:
    """Write *data* as JSON so readers see either the old or the new file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
