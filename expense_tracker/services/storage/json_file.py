"""
JSON File Storage Implementation

DESIGN DECISION: One JSON file per collection under a data directory,
named ``<key_prefix><collection>.json``. This mirrors the browser
localStorage layout the tracker started from, so a backup is just a copy
of the directory.

TRADEOFFS:
- Whole-collection rewrite on every mutation (fine for a few thousand rows)
- Writes go to a temp file and are renamed into place, so a crash never
  leaves a half-written collection
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.config import get_settings
from expense_tracker.services.storage.interface import (
    StorageInterface,
    StorageReadError,
    StorageWriteError,
)

logger = structlog.get_logger(__name__)


class JsonFileStorage(StorageInterface):
    """
    File-backed implementation of the collection store.
    """

    def __init__(
        self,
        data_directory: Optional[Path] = None,
        key_prefix: Optional[str] = None,
        write_attempts: Optional[int] = None,
    ):
        settings = get_settings().storage
        self._directory = Path(data_directory or settings.data_directory)
        self._prefix = settings.key_prefix if key_prefix is None else key_prefix
        self._write_attempts = write_attempts or settings.write_attempts
        self._directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        """File that holds a collection."""
        return self._directory / f"{self._prefix}{name}.json"

    def read_collection(self, name: str) -> list[dict]:
        path = self.path_for(name)
        if not path.exists():
            return []

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageReadError(f"Failed to read collection '{name}': {e}") from e

        if not isinstance(data, list):
            raise StorageReadError(
                f"Collection '{name}' must hold a JSON array, found {type(data).__name__}"
            )
        return data

    def write_collection(self, name: str, records: list[dict]) -> None:
        writer = retry(
            retry=retry_if_exception_type(OSError),
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            reraise=True,
        )(self._write_atomically)

        try:
            writer(name, records)
        except OSError as e:
            logger.error("collection_write_failed", collection=name, error=str(e))
            raise StorageWriteError(f"Failed to write collection '{name}': {e}") from e
        except TypeError as e:
            raise StorageWriteError(
                f"Collection '{name}' holds a value that is not JSON serialisable: {e}"
            ) from e

    def _write_atomically(self, name: str, records: list[dict]) -> None:
        path = self.path_for(name)
        payload = json.dumps(list(records), indent=2, ensure_ascii=False)

        fd, tmp_name = tempfile.mkstemp(
            dir=self._directory,
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
