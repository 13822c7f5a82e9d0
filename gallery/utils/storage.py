import os
import tempfile
from pathlib import Path
from typing import Union

from gallery.config import logger

PathLike = Union[str, Path]


class LocalStorage:
    """Filesystem access used by the variant pipeline."""

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def mtime(self, path: PathLike) -> float:
        return Path(path).stat().st_mtime

    def mkdir_all(self, path: PathLike) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def write(self, path: PathLike, data: bytes) -> None:
        path = Path(path)
        logger.debug("Writing %d bytes → %s", len(data), path)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
