import os
import sys
import tempfile
from pathlib import Path

import pytest
from PIL import Image

# Ensure project root is on sys.path so 'gallery' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_TMP = Path(tempfile.mkdtemp(prefix="gallery_tests_"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP / 'gallery.db'}")
os.environ.setdefault("GALLERY_ROOT", str(_TMP / "galleries"))

from gallery.errors import BackendWriteError  # noqa: E402


class RecordingHandle:
    def __init__(self, backend, path):
        self.backend = backend
        self.path    = path

    def dimensions(self):
        return self.backend.dimensions

    def apply_and_write(self, commands, output_path):
        commands = list(commands)
        if self.backend.fail_on and self.backend.fail_on in str(output_path):
            raise BackendWriteError(f"refusing to write {output_path}")
        self.backend.calls.append((Path(output_path), commands))
        Path(output_path).write_bytes(b"derived")


class RecordingBackend:
    """Stands in for Pillow; records every write instead of touching pixels."""

    def __init__(self, dimensions=(600, 300), fail_on=None):
        self.dimensions = dimensions
        self.fail_on    = fail_on
        self.calls      = []

    def open(self, path):
        return RecordingHandle(self, path)


@pytest.fixture()
def make_image():
    def _make(path: Path, size=(600, 300), color=(200, 40, 40)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color).save(path)
        return path
    return _make


@pytest.fixture()
def backend():
    return RecordingBackend()
