from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from gallery.config import GALLERY_ROOT, IMAGES_URL_PREFIX, load_versions, logger
from gallery.errors import GalleryError, SourceMissing, VersionResolutionError
from gallery.schemas import SourceImage
from gallery.utils.image_backend import PillowBackend
from gallery.utils.staleness import is_stale
from gallery.utils.storage import LocalStorage
from gallery.utils.variant_spec import (
    OptionSet,
    VariantPaths,
    build_plan,
    column_class,
    columns_count,
    resolve_paths,
    wraps_in_row,
)


class GalleryLike(Protocol):
    path:       str
    updated_at: Optional[datetime]


@dataclass(frozen=True)
class PhotoEntry:
    file:          str
    version:       str
    alt:           str
    src:           Optional[str]
    full_src:      Optional[str]
    columns_count: int
    column_class:  str
    wrap_in_row:   bool


class VariantPipeline:
    """
    Keeps the resized and processed copies of gallery images up to date.

    Every (gallery path, file, version) triple owns two artifacts:

      • ``<root>/<path>/resized/<file>`` – bounded to 3000×3000, quality 90
      • ``<root>/<path>/processed/<file>-<version>.<ext>`` – the version crop

    Artifacts are only rewritten when missing or older than the gallery.
    """

    RESIZED_COMMANDS = (("resize", "3000x3000>"), ("quality", 90))

    def __init__(
        self,
        root: Union[str, Path] = GALLERY_ROOT,
        backend: Optional[PillowBackend] = None,
        storage: Optional[LocalStorage] = None,
        versions: Optional[Mapping[str, Mapping[str, Any]]] = None,
        url_prefix: str = IMAGES_URL_PREFIX,
    ):
        self.root       = Path(root)
        self.storage    = storage or LocalStorage()
        self.backend    = backend or PillowBackend(self.storage)
        self.versions   = versions if versions is not None else load_versions()
        self.url_prefix = url_prefix

    # ── Resolution ─────────────────────────────────────────────────────────
    def options_for(self, image: SourceImage, gallery_options: Optional[Mapping[str, Any]] = None) -> OptionSet:
        return OptionSet.merge(self.versions.get(image.version), gallery_options, image.options)

    def resolve(self, image: SourceImage, gallery_path: Optional[str]) -> Union[VariantPaths, VersionResolutionError]:
        if gallery_path is None:
            return VersionResolutionError(f"No gallery or gallery path given for image {image.file!r}")
        return resolve_paths(self.root, gallery_path, image.file, image.version, self.url_prefix)

    def entry_for(
        self,
        image: SourceImage,
        gallery: Optional[GalleryLike] = None,
        path: Optional[str] = None,
    ) -> PhotoEntry:
        if image.src:
            src = full_src = image.src
        else:
            paths = self.resolve(image, _gallery_path(gallery, path))
            if isinstance(paths, VersionResolutionError):
                src = full_src = None
            else:
                src, full_src = paths.processed_url, paths.resized_url
        return PhotoEntry(
            file          = image.file,
            version       = image.version,
            alt           = image.alt,
            src           = src,
            full_src      = full_src,
            columns_count = columns_count(image.version),
            column_class  = column_class(image.version),
            wrap_in_row   = wraps_in_row(image.version),
        )

    # ── Generation ─────────────────────────────────────────────────────────
    def materialize(
        self,
        image: SourceImage,
        options: OptionSet,
        gallery: Optional[GalleryLike] = None,
        path: Optional[str] = None,
    ) -> None:
        """Write both artifacts for *image* if they are missing or stale."""
        if image.src:
            logger.debug("Image %s uses a literal src, nothing to generate", image.src)
            return

        paths = self.resolve(image, _gallery_path(gallery, path))
        if isinstance(paths, VersionResolutionError):
            logger.error("Skipping %s (%s): %s", image.file, image.version, paths)
            return

        updated_at = gallery.updated_at if gallery is not None else None
        if not is_stale(paths.processed, paths.resized, updated_at, self.storage):
            logger.debug("Variants for %s are up to date", paths.source)
            return

        if not self.storage.exists(paths.source):
            logger.warning("%s", SourceMissing(f"Source image {paths.source} does not exist"))
            return

        self._write_resized(paths)
        self._write_processed(paths, options)

    def _write_resized(self, paths: VariantPaths) -> None:
        try:
            self.storage.mkdir_all(paths.resized.parent)
            handle = self.backend.open(paths.source)
            logger.info("Writing resized image to %s", paths.resized)
            handle.apply_and_write(list(self.RESIZED_COMMANDS), paths.resized)
        except (GalleryError, OSError) as exc:
            logger.error("Resized image for %s failed: %s", paths.source, exc)

    def _write_processed(self, paths: VariantPaths, options: OptionSet) -> None:
        try:
            self.storage.mkdir_all(paths.processed.parent)
            handle = self.backend.open(paths.source)
            plan = build_plan(options, handle.dimensions())
            logger.info("Writing processed image to %s", paths.processed)
            handle.apply_and_write(plan.commands(), paths.processed)
        except (GalleryError, OSError) as exc:
            logger.error("Processed image for %s failed: %s", paths.source, exc)

    # ── Batches ────────────────────────────────────────────────────────────
    def build(
        self,
        image: SourceImage,
        gallery: Optional[GalleryLike] = None,
        gallery_options: Optional[Mapping[str, Any]] = None,
        path: Optional[str] = None,
    ) -> PhotoEntry:
        entry = self.entry_for(image, gallery, path)
        self.materialize(image, self.options_for(image, gallery_options), gallery, path)
        return entry

    def process_gallery(
        self,
        gallery: GalleryLike,
        images: Iterable[Union[SourceImage, Dict[str, Any]]],
        gallery_options: Optional[Mapping[str, Any]] = None,
    ) -> List[PhotoEntry]:
        entries: List[PhotoEntry] = []
        for raw in images:
            try:
                image = raw if isinstance(raw, SourceImage) else SourceImage(**raw)
            except ValidationError as exc:
                logger.error("Skipping malformed image entry %r in %s: %s", raw, gallery.path, exc)
                continue
            entries.append(self.build(image, gallery, gallery_options))
        logger.info("Processed %d image(s) for gallery %s", len(entries), gallery.path)
        return entries


def _gallery_path(gallery: Optional[GalleryLike], path: Optional[str]) -> Optional[str]:
    if path is not None:
        return path
    return gallery.path if gallery is not None else None
