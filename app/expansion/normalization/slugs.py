"""
Collision-free slug resolution against the listing store.
"""

from __future__ import annotations

import time
from collections.abc import Callable


class SlugResolver:
    """
    Appends `-1`, `-2`, ... to a taken slug, bounded by `max_attempts`;
    past the bound a millisecond timestamp suffix guarantees termination.
    """

    def __init__(
        self,
        *,
        slug_exists: Callable[[str], bool],
        max_attempts: int = 100,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._slug_exists = slug_exists
        self._max_attempts = max(1, max_attempts)
        self._clock = clock
        self._reserved: set[str] = set()

    def _taken(self, slug: str) -> bool:
        return slug in self._reserved or self._slug_exists(slug)

    def resolve(self, base_slug: str) -> str:
        """
        Return a free slug and reserve it for the rest of this resolver's life.
        """

        slug = base_slug
        counter = 1
        while self._taken(slug):
            if counter > self._max_attempts:
                slug = f"{base_slug}-{int(self._clock() * 1000)}"
                break
            slug = f"{base_slug}-{counter}"
            counter += 1

        self._reserved.add(slug)
        return slug
