"""ColorAllocator — hands out distinct cluster colors for one run.

Each allocator owns a private copy of the palette and draws from it
without replacement.  Once the copy is exhausted every further call
returns FALLBACK_COLOR.  Build a fresh allocator per pipeline run.
"""

from __future__ import annotations

import random
from typing import Sequence

MAPBOX_COLORS: tuple[str, ...] = (
    "#000000",
    "#0000FF",
    "#00FF00",
    "#EE00EE",
    "#8a0a19",
    "#AA00FF",
    "#2e2e2d",
    "#130930",
    "#053307",
    "#380f05",
)

FALLBACK_COLOR = "#000000"


class ColorAllocator:
    """Draws palette colors at pseudo-random positions without repeats.

    Args:
        seed: Seed for the allocator's private random source.
        palette: Colors to draw from.
        fallback: Returned once the palette is exhausted.
    """

    def __init__(
        self,
        seed: int,
        palette: Sequence[str] = MAPBOX_COLORS,
        fallback: str = FALLBACK_COLOR,
    ) -> None:
        self._rng = random.Random(seed)
        self._remaining: list[str] = list(palette)
        self._fallback = fallback

    def next_color(self) -> str:
        if not self._remaining:
            return self._fallback
        index = self._rng.randrange(len(self._remaining))
        return self._remaining.pop(index)

    @property
    def remaining(self) -> int:
        return len(self._remaining)
