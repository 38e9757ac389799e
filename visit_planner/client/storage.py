"""Local persistence for the client - a JSON file keyed by namespace"""

import json
import logging
import os
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from ..config import LOCAL_STORAGE_PATH
from .models import Visit

logger = logging.getLogger(__name__)

VISITS_NAMESPACE = "visits"


class StorageError(Exception):
    """Raised when stored data cannot be read back"""


class LocalStorage:
    """Stores opaque blobs per namespace in a single JSON file"""

    def __init__(self, path: Union[str, Path] = LOCAL_STORAGE_PATH):
        self.path = Path(path)

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Unexpected storage layout in {self.path}")
        return data

    def get_item(self, key: str):
        return self._read_all().get(key)

    def set_item(self, key: str, value) -> None:
        try:
            data = self._read_all()
        except StorageError:
            logger.warning(f"⚠️ Overwriting unreadable storage file {self.path}")
            data = {}
        data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def load_visits(self) -> list[Visit]:
        raw = self.get_item(VISITS_NAMESPACE)
        if raw is None:
            return []
        try:
            return [Visit.model_validate(item) for item in raw]
        except (TypeError, ValidationError) as e:
            raise StorageError(f"Stored visits are corrupted: {e}") from e

    def save_visits(self, visits) -> None:
        self.set_item(VISITS_NAMESPACE, [v.model_dump(mode="json") for v in visits])
