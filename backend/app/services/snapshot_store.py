"""JSON snapshot files bound to a Pydantic model.

Writes go to a temp file in the same directory and are moved into place with
``os.replace``, so a reader never sees a half-written file and a failed write
leaves the previous snapshot intact.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class SnapshotStore(Generic[M]):
    def __init__(self, path: Path, model: Type[M]):
        self.path = Path(path)
        self.model = model

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[M]:
        """Read and validate the snapshot. Missing or invalid files yield ``None``."""
        if not self.exists():
            logger.info("No snapshot at %s", self.path)
            return None
        try:
            return self.model.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError):
            logger.exception("Failed to read snapshot %s", self.path)
            return None

    def save(self, snapshot: M) -> None:
        """Atomically replace the snapshot file. Raises ``OSError`` on failure."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(snapshot.model_dump_json(indent=2))
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)
