import io
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from PIL import Image, ImageOps

from gallery.errors import BackendWriteError
from gallery.utils.storage import LocalStorage

_RESIZE_RE = re.compile(r"^(\d*)x(\d*)(>?)$")
_CROP_RE   = re.compile(r"^(\d+)x(\d+)\+(\d+)\+(\d+)(!?)$")

_READ_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


def _coerce(value: Any) -> Any:
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


def _resize(img: Image.Image, geometry: str) -> Image.Image:
    """Apply an ImageMagick-style ``WxH`` geometry (``>`` = only shrink)."""
    m = _RESIZE_RE.match(geometry.replace(">x", "x"))
    if not m or not (m.group(1) or m.group(2)):
        raise ValueError(f"Unsupported resize geometry {geometry!r}")

    w0, h0 = img.size
    box_w  = int(m.group(1)) if m.group(1) else None
    box_h  = int(m.group(2)) if m.group(2) else None

    if box_w is None:
        size = (max(1, round(w0 * box_h / h0)), box_h)
    elif box_h is None:
        size = (box_w, max(1, round(h0 * box_w / w0)))
    else:
        scale = min(box_w / w0, box_h / h0)
        size  = (max(1, round(w0 * scale)), max(1, round(h0 * scale)))

    if ">" in geometry and size[0] >= w0 and size[1] >= h0:
        return img
    return img.resize(size, resample=Image.LANCZOS)


def _crop(img: Image.Image, geometry: str) -> Image.Image:
    m = _CROP_RE.match(geometry)
    if not m:
        raise ValueError(f"Unsupported crop geometry {geometry!r}")
    w, h, x, y = (int(g) for g in m.groups()[:4])
    if not m.group(5):
        # without the force flag the box is clipped to the image
        w = min(w, img.width - x)
        h = min(h, img.height - y)
    return img.crop((x, y, x + w, y + h))


class ImageHandle:
    def __init__(self, path: Path, image: Image.Image, storage: LocalStorage):
        self.path     = path
        self._image   = image
        self._storage = storage

    def dimensions(self) -> Tuple[int, int]:
        return self._image.size

    def apply_and_write(self, commands: Iterable[Tuple[str, Any]], output_path: Path) -> None:
        """
        Run *commands* in order and write the result to *output_path*.

        ``resize`` and ``crop`` transform pixels; ``gravity`` is accepted for
        compatibility since crop offsets are already absolute. Anything else
        is handed to ``Image.save`` as a keyword.
        """
        output_path = Path(output_path)
        img = self._image
        save_kwargs: Dict[str, Any] = {}
        try:
            for name, value in commands:
                if name == "resize":
                    img = _resize(img, str(value))
                elif name == "crop":
                    img = _crop(img, str(value))
                elif name == "gravity":
                    continue
                else:
                    save_kwargs[name] = _coerce(value)

            fmt = save_kwargs.pop("format", None) or _format_for(output_path)
            exif_bytes = self._image.info.get("exif")
            if exif_bytes and "exif" not in save_kwargs:
                save_kwargs["exif"] = exif_bytes

            buffer = io.BytesIO()
            img.save(buffer, format=str(fmt).upper(), **save_kwargs)
            self._storage.write(output_path, buffer.getvalue())
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise BackendWriteError(f"Could not write {output_path} from {self.path}: {exc}") from exc


def _format_for(path: Path) -> str:
    fmt = Image.registered_extensions().get(path.suffix.lower())
    if not fmt:
        raise ValueError(f"No image format registered for {path.suffix!r}")
    return fmt


class PillowBackend:
    """Image backend built on Pillow; one instance per worker."""

    def __init__(self, storage: Optional[LocalStorage] = None):
        self.storage = storage or LocalStorage()

    def open(self, path: Path) -> ImageHandle:
        try:
            with Image.open(path) as img:
                oriented = ImageOps.exif_transpose(img)
                oriented.load()
        except _READ_ERRORS as exc:
            raise BackendWriteError(f"Could not read {path}: {exc}") from exc
        return ImageHandle(Path(path), oriented, self.storage)
