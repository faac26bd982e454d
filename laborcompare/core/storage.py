"""
Filesystem access for raw artifacts and published index files.

Layout under ``data_dir``::

    raw/<artifact>.json            one file per fetcher
    raw/<artifact>.partial.json    what an aborted fetch managed to collect
    <published paths>              index files for the presentation layer

Every write is atomic: the payload goes to a temp file in the target
directory and is moved into place with ``os.replace``. Readers never
see a half-written file, and a stage that raises before writing leaves
the previous run's file untouched.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from laborcompare.core.api_errors import MissingArtifactError
from laborcompare.core.cache import RunCache

logger = logging.getLogger(__name__)


def dumps(payload: Any, compact: bool = False) -> str:
    """Serialize deterministically (same input, same bytes)."""
    if compact:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    return json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)


def atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class ArtifactStore:
    """Reads and writes pipeline files relative to one data directory."""

    def __init__(self, data_dir: Union[str, Path], cache: Optional[RunCache] = None):
        self.data_dir = Path(data_dir)
        self.raw_dir = self.data_dir / "raw"
        self.cache = cache if cache is not None else RunCache("artifacts")

    # ----------------------------------------------------------------------
    # Raw artifacts
    # ----------------------------------------------------------------------

    def raw_path(self, artifact: str) -> Path:
        return self.raw_dir / artifact

    def partial_path(self, artifact: str) -> Path:
        stem = artifact[:-5] if artifact.endswith(".json") else artifact
        return self.raw_dir / f"{stem}.partial.json"

    def has_raw(self, artifact: str) -> bool:
        return self.raw_path(artifact).exists()

    def write_raw(self, artifact: str, payload: Any) -> Path:
        path = self.raw_path(artifact)
        atomic_write_text(path, dumps(payload))
        self.cache.invalidate(str(path))
        partial = self.partial_path(artifact)
        if partial.exists():
            partial.unlink()
        logger.info(f"Saved raw artifact {path}")
        return path

    def write_partial(self, artifact: str, payload: Any) -> Path:
        """Keep an aborted fetch's data beside, not over, the last good artifact."""
        path = self.partial_path(artifact)
        atomic_write_text(path, dumps(payload))
        logger.warning(f"Saved partial results to {path}")
        return path

    def read_raw(self, artifact: str, required: bool = False) -> Optional[Any]:
        """
        Load a raw artifact.

        Args:
            artifact: File name under raw/
            required: Raise instead of returning None when absent

        Raises:
            MissingArtifactError: If required and the file does not exist
        """
        path = self.raw_path(artifact)
        if not path.exists():
            if required:
                raise MissingArtifactError(artifact)
            logger.warning(f"Raw artifact {artifact} not found; its fields will be absent")
            return None
        return self.cache.get_or_load(str(path), lambda: self._load(path))

    # ----------------------------------------------------------------------
    # Published files
    # ----------------------------------------------------------------------

    def path(self, relpath: str) -> Path:
        return self.data_dir / relpath

    def write_json(self, relpath: str, payload: Any, compact: bool = False) -> Path:
        path = self.path(relpath)
        atomic_write_text(path, dumps(payload, compact=compact))
        self.cache.invalidate(str(path))
        return path

    def read_json(self, relpath: str) -> Optional[Any]:
        path = self.path(relpath)
        if not path.exists():
            return None
        return self.cache.get_or_load(str(path), lambda: self._load(path))

    def list_json(self, reldir: str) -> list:
        directory = self.path(reldir)
        if not directory.is_dir():
            return []
        return sorted(p.name for p in directory.glob("*.json"))

    def remove_stale(self, reldir: str, keep: set) -> int:
        """Delete JSON files in ``reldir`` that this run did not produce."""
        removed = 0
        for name in self.list_json(reldir):
            if name not in keep:
                self.path(f"{reldir}/{name}").unlink()
                removed += 1
        if removed:
            logger.info(f"Removed {removed} stale files from {reldir}")
        return removed

    @staticmethod
    def _load(path: Path) -> Any:
        with open(path, "r", encoding="utf-8") as handle:
            return json.load(handle)
