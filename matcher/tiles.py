"""Tile-related data structures and helpers for Color Matcher."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Iterable


class Color(Enum):
    RED = auto()
    GREEN = auto()
    BLUE = auto()
    YELLOW = auto()
    ORANGE = auto()
    PURPLE = auto()
    PINK = auto()
    TEAL = auto()

    def __str__(self) -> str:
        return self.name.lower()


# Fixed palette, in the order colors are offered to the dealer.
PALETTE: tuple[Color, ...] = tuple(Color)


@dataclass(frozen=True)
class Tile:
    """Immutable view of one board cell.

    The engine replaces tiles instead of mutating them, so a snapshot handed to
    the UI never changes underneath it.
    """

    id: str
    face: Color
    is_revealed: bool = False
    is_retired: bool = False

    def revealed(self, value: bool = True) -> Tile:
        return replace(self, is_revealed=value)

    def retired(self) -> Tile:
        return replace(self, is_retired=True)


def faces_match(tiles: Iterable[Tile]) -> bool:
    """Return True if every tile carries the same face."""
    faces = {tile.face for tile in tiles}
    return len(faces) == 1


def serialize_tile(tile: Tile, *, hide_face: bool = True) -> dict[str, object]:
    """Serialize a tile for a renderer; face-down tiles do not leak their color."""
    show = tile.is_revealed or tile.is_retired or not hide_face
    return {
        "id": tile.id,
        "face": tile.face.name.lower() if show else None,
        "revealed": tile.is_revealed,
        "retired": tile.is_retired,
    }


def tile_label(tile: Tile) -> str:
    if tile.is_retired:
        return f"{tile.face.name.title()} (matched)"
    if tile.is_revealed:
        return tile.face.name.title()
    return "Hidden"
