"""JSON file helpers shared by the ledger, daily and config stores"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from mintik.services.errors import PersistenceError

logger = logging.getLogger(__name__)

def read_json(path: Path) -> Optional[Any]:
    """Load a JSON document; None if the file is missing or unreadable"""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to read {path}, ignoring it: {e}")
        return None

def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON via a temp file in the same directory and an atomic rename"""
    path = Path(path)
    temp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.stem}_",
            suffix=".json.tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        os.replace(temp_path, path)
    except (OSError, TypeError, ValueError) as e:
        if temp_path is not None:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
        raise PersistenceError(f"Failed to write {path}: {e}") from e

def remove_file(path: Path) -> bool:
    """Delete a file if present; True when something was removed"""
    path = Path(path)
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        raise PersistenceError(f"Failed to delete {path}: {e}") from e
