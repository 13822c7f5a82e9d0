class GalleryError(Exception):
    """Base class for failures raised while deriving gallery images."""


class InvalidGravity(GalleryError, ValueError):
    pass


class InvalidDimensions(GalleryError, ValueError):
    pass


class VersionResolutionError(GalleryError):
    """A file name / version pair cannot be turned into a versioned file name."""


class SourceMissing(GalleryError):
    pass


class BackendWriteError(GalleryError):
    """The image backend failed to read, transform or write an image."""
