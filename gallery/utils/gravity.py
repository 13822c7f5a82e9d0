from numbers import Real
from typing import Sequence, Tuple

from gallery.errors import InvalidDimensions, InvalidGravity

GRAVITY_TYPES = (
    "north_west", "north", "north_east",
    "east", "south_east", "south",
    "south_west", "west", "center",
)

_NORTH = {"north_west", "north", "north_east"}
_SOUTH = {"south_west", "south", "south_east"}
_WEST  = {"north_west", "west", "south_west"}
_EAST  = {"north_east", "east", "south_east"}


def check_dimensions(name: str, dims: Sequence[float]) -> Tuple[float, float]:
    """Return *dims* as a ``(width, height)`` pair or raise InvalidDimensions."""
    if isinstance(dims, (str, bytes)) or not hasattr(dims, "__len__") or len(dims) != 2:
        raise InvalidDimensions(f"{name} dimensions must be supplied as a (width, height) pair")
    width, height = dims
    for value in (width, height):
        if isinstance(value, bool) or not isinstance(value, Real) or value <= 0:
            raise InvalidDimensions(f"{name} dimensions must be positive numbers, got {dims!r}")
    return width, height


def normalize_gravity(gravity: str) -> str:
    value = str(gravity).strip().lower()
    if value not in GRAVITY_TYPES:
        raise InvalidGravity(f"Gravity must be one of {list(GRAVITY_TYPES)}, got {gravity!r}")
    return value


def crop_offsets(
    gravity: str,
    original: Sequence[float],
    target: Sequence[float],
) -> Tuple[int, int]:
    """
    Return the ``(x, y)`` offset of a *target*-sized box inside *original*,
    anchored according to *gravity*.

    Centred axes use half the spare room, far edges use all of it; both are
    truncated toward zero and never negative.
    """
    gravity = normalize_gravity(gravity)
    orig_w, orig_h = check_dimensions("Original", original)
    crop_w, crop_h = check_dimensions("Cropped", target)

    if gravity in _NORTH:
        y = 0
    elif gravity in _SOUTH:
        y = int(orig_h - crop_h)
    else:
        y = int((orig_h - crop_h) / 2.0)

    if gravity in _WEST:
        x = 0
    elif gravity in _EAST:
        x = int(orig_w - crop_w)
    else:
        x = int((orig_w - crop_w) / 2.0)

    return max(x, 0), max(y, 0)
