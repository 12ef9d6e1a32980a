"""
Tile cache: rendered tiles keyed by TileKey.

The cache is the only shared mutable structure in the engine. Worker
threads never touch it; the scheduler collects their results and inserts
them in one serialized merge step, and the renderer reads it between steps.
"""

from .tiles import check_tile_image


class TileCache:
    """
    Mapping TileKey -> read-only tile image.

    One entry per key, last write wins. Entries are removed only by
    ``prune`` (stale generations) or ``clear``.
    """

    def __init__(self):
        self._tiles = {}

    def __len__(self):
        return len(self._tiles)

    def __contains__(self, key):
        return key in self._tiles

    def __iter__(self):
        return iter(self._tiles)

    def get(self, key, default=None):
        return self._tiles.get(key, default)

    def items(self):
        return self._tiles.items()

    def merge(self, results):
        """
        Insert rendered tiles.

        Args:
            results: Iterable of (TileKey, image) pairs

        Returns:
            Number of tiles inserted

        Raises:
            AssertionError if an image does not match its key's layout;
            tiles before the bad one are kept, the bad one is not inserted
        """
        count = 0
        for key, image in results:
            check_tile_image(key, image)
            self._tiles[key] = image
            count += 1
        return count

    def keys_for_generation(self, generation):
        """Keys rendered at the given (zoom, max_iter)."""
        return [key for key in self._tiles if key.generation == generation]

    def stale_items(self, generation):
        """(key, image) pairs rendered at any other (zoom, max_iter)."""
        return [(key, image) for key, image in self._tiles.items()
                if key.generation != generation]

    def prune(self, generation):
        """
        Drop every tile not rendered at ``generation``.

        Returns:
            Number of tiles removed
        """
        stale = [key for key in self._tiles if key.generation != generation]
        for key in stale:
            del self._tiles[key]
        return len(stale)

    def clear(self):
        self._tiles.clear()
