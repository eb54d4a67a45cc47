"""Board dealing utilities for Color Matcher."""

from __future__ import annotations

import uuid
from collections import Counter
from random import Random
from typing import Dict, List, Optional, Sequence

from .tiles import PALETTE, Color, Tile


class InvalidLayout(ValueError):
    """Raised when an explicit layout does not hold whole groups."""


def _tile_id(rng: Random) -> str:
    return uuid.UUID(int=rng.getrandbits(128), version=4).hex


def build_faces(group_count: int, group_size: int, rng: Random) -> List[Color]:
    """Return a shuffled face sequence of ``group_count`` distinct colors."""
    if group_count < 1 or group_count > len(PALETTE):
        raise InvalidLayout(f"Group count must be between 1 and {len(PALETTE)}, got {group_count}.")
    colors = rng.sample(PALETTE, group_count)
    faces = [color for color in colors for _ in range(group_size)]
    rng.shuffle(faces)
    return faces


def validate_layout(layout: Sequence[Color], group_size: int) -> None:
    if not layout:
        raise InvalidLayout("Layout must not be empty.")
    for face, count in face_counts(layout).items():
        if count != group_size:
            raise InvalidLayout(f"Face {face} appears {count} times; expected {group_size}.")


def deal_board(
    *,
    group_count: int,
    group_size: int,
    rng: Optional[Random] = None,
    layout: Optional[Sequence[Color]] = None,
    face_up: bool = True,
) -> List[Tile]:
    """Deal a board of tiles, face-up for the preview by default."""
    if rng is None:
        rng = Random()
    if layout is not None:
        faces = list(layout)
        validate_layout(faces, group_size)
    else:
        faces = build_faces(group_count, group_size, rng)
    return [Tile(id=_tile_id(rng), face=face, is_revealed=face_up) for face in faces]


def face_counts(faces: Sequence[Color]) -> Dict[Color, int]:
    return dict(Counter(faces))


def has_possible_match(tiles: Sequence[Tile], picks: int) -> bool:
    """Return True if some face still has ``picks`` unretired tiles."""
    remaining = Counter(tile.face for tile in tiles if not tile.is_retired)
    return any(count >= picks for count in remaining.values())
