"""Coordinate keys and human-readable location labels."""

from __future__ import annotations

import re

from wms_core.models.warehouse import Coordinate

_LABEL_RE = re.compile(r"^([A-Z]+)-(\d{2,})-(\d{2,})$")


def coordinate_key(x: int, y: int, z: int) -> tuple[int, int, int]:
    """Canonical hashable key of a 3D warehouse position."""
    return (int(x), int(y), int(z))


def footprint_key(x: int, y: int) -> tuple[int, int]:
    """Key of the (x, y) projection shared by all z-levels of a stack."""
    return (int(x), int(y))


def column_letters(x: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA."""
    if x < 1:
        raise ValueError(f"Column must be positive: {x}")
    letters = ""
    while x:
        x, rem = divmod(x - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def column_number(letters: str) -> int:
    x = 0
    for ch in letters:
        x = x * 26 + (ord(ch) - ord("A") + 1)
    return x


def location_label(coordinate: Coordinate) -> str:
    """Shelf label as printed on scan labels, e.g. ``A-01-02`` for (1, 1, 2)."""
    return f"{column_letters(coordinate.x)}-{coordinate.y:02d}-{coordinate.z:02d}"


def parse_location_label(label: str) -> Coordinate:
    match = _LABEL_RE.match(label.strip().upper())
    if not match:
        raise ValueError(f"Not a location label: {label!r}")
    letters, y, z = match.groups()
    return Coordinate(column_number(letters), int(y), int(z))
