"""
Tile scheduler: keeps the tile cache filled for the current viewport.

Each call to ``step()`` is one render step:

1. Compute the tile keys that cover the viewport.
2. Diff them against the cache; anything absent is missing.
3. Render a budgeted batch of missing tiles on a thread pool (fork).
4. Wait for the whole batch, then insert the results into the cache in a
   single serialized merge (join). Workers never touch the cache, so no
   locking is needed.

The budget is a tile count: ``workers * tiles_per_worker`` per step (5 per
worker by default). Every step with missing tiles renders at least one, so
a viewport needing N tiles completes within N steps, and usually within
ceil(N / budget).

Invalidation is lazy. Keys carry zoom and max_iter, so after a zoom or
iteration change no old tile can satisfy a required key. Old tiles stay in
the cache and are offered to the renderer only as filler beneath the
incomplete new frame; they are pruned once the new frame completes.
Panning and resizing at the same zoom invalidate nothing.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from .cache import TileCache
from .settings import EngineSettings
from .tiles import TileKey, check_tile_image, render_tile
from .viewport import ViewportState


class TileRenderError(RuntimeError):
    """A tile failed to render. The rest of its batch was still merged."""

    def __init__(self, key):
        super().__init__(f"failed to render tile {key}")
        self.key = key


@dataclass
class Frame:
    """
    Everything a renderer needs for one displayed frame.

    Attributes:
        tiles: (key, image) pairs of the current generation covering the view
        filler: (key, image) pairs of older generations to draw underneath
            while ``complete`` is False, farthest zoom first
        center_x, center_y, zoom: Camera state for placing tiles
        width, height: View size in pixels
        max_iter: Current iteration budget
        complete: True iff every required tile is present
    """

    tiles: list
    center_x: int
    center_y: int
    zoom: int
    width: int
    height: int
    max_iter: int
    complete: bool
    filler: list = field(default_factory=list)


def required_tile_keys(width, height, center_x, center_y, zoom, max_iter, tile_size):
    """
    Tile keys needed to cover a view.

    The grid is aligned downward to a multiple of tile_size, with one extra
    tile of slack on the top and left edges.

    Returns:
        List of TileKey, column by column
    """
    if tile_size <= 0 or width <= 0 or height <= 0:
        return []
    top_x = center_x - width // 2
    top_y = center_y - height // 2
    start_x = top_x - top_x % tile_size - tile_size
    start_y = top_y - top_y % tile_size - tile_size
    return [
        TileKey(x, y, zoom, tile_size, max_iter)
        for x in range(start_x, top_x + width, tile_size)
        for y in range(start_y, top_y + height, tile_size)
    ]


class TileScheduler:
    """
    Owns the viewport and tile cache, and fills the cache step by step.

    Usage:
        with TileScheduler(ViewportState.default(800, 600)) as engine:
            engine.zoom(1, 0, 0)
            # In your game loop:
            engine.step()
            frame = engine.frame()
            draw(frame)

    Attributes:
        viewport: Current ViewportState (mutate it through the commands below)
        cache: TileCache of rendered tiles
        workers: Thread pool size
        budget: Default number of tiles rendered per step
    """

    def __init__(self, viewport=None, settings=None, workers=None, seed=None):
        """
        Initialize the scheduler.

        Args:
            viewport: Starting ViewportState (default: 800x600 default view)
            settings: EngineSettings (default: built-in defaults, or the
                viewport's settings if a viewport is given)
            workers: Thread pool size (default: settings, then CPU count)
            seed: Seed for probe sampling, for reproducible tiles
        """
        if settings is None:
            settings = viewport.settings if viewport is not None else EngineSettings()
        self.settings = settings
        self.viewport = viewport or ViewportState.default(800, 600, settings)
        self.cache = TileCache()
        self.workers = max(1, workers) if workers is not None else settings.resolved_workers()
        self.budget = max(1, self.workers * settings.tiles_per_worker)
        self._rng = np.random.default_rng(seed)
        self._executor = ThreadPoolExecutor(max_workers=self.workers,
                                            thread_name_prefix='tilebrot')

    def close(self):
        """Shut down the worker pool."""
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------------------------------------------------------------
    # Controller commands
    # ------------------------------------------------------------------

    def pan(self, dx, dy):
        self.viewport.pan(dx, dy)

    def zoom(self, steps, pivot_x=0, pivot_y=0):
        """Zoom about a screen point given as an offset from the view center."""
        return self.viewport.zoom_by(steps, pivot_x, pivot_y)

    def resize(self, width, height):
        return self.viewport.resize(width, height)

    def set_iterations(self, delta):
        return self.viewport.set_iterations(delta)

    def reset(self):
        """Restore the default view and start over with an empty cache."""
        self.viewport.reset()
        self.cache = TileCache()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def required_keys(self):
        vp = self.viewport
        return required_tile_keys(vp.width, vp.height, vp.center_x, vp.center_y,
                                  vp.zoom, vp.max_iter, self.settings.tile_size)

    def missing_keys(self):
        """Required keys not in the cache, nearest to the view center first."""
        vp = self.viewport
        half = self.settings.tile_size / 2

        def distance(key):
            return (key.origin_x + half - vp.center_x) ** 2 + (key.origin_y + half - vp.center_y) ** 2

        missing = [key for key in self.required_keys() if key not in self.cache]
        missing.sort(key=distance)
        return missing

    def is_complete(self):
        """True iff every tile the current view needs is cached."""
        return all(key in self.cache for key in self.required_keys())

    def _render(self, key, seed):
        image = render_tile(
            key,
            rng=np.random.default_rng(seed),
            probe_divisor=self.settings.probe_divisor,
            progressive=self.settings.progressive,
        )
        check_tile_image(key, image)
        return image

    def step(self, budget=None):
        """
        Render and merge one budgeted batch of missing tiles.

        Args:
            budget: Max tiles this step (default: self.budget); floored at 1

        Returns:
            Number of tiles merged into the cache

        Raises:
            TileRenderError if a tile failed; the other tiles of the batch
            are merged first
        """
        limit = self.budget if budget is None else max(1, int(budget))
        batch = self.missing_keys()[:limit]
        merged = 0
        if batch:
            # Seeds are drawn up front so tiles do not depend on thread timing
            seeds = self._rng.integers(0, 2 ** 63 - 1, size=len(batch))
            futures = [(key, self._executor.submit(self._render, key, int(seed)))
                       for key, seed in zip(batch, seeds)]

            results = []
            failure = None
            for key, future in futures:
                try:
                    results.append((key, future.result()))
                except Exception as e:
                    if failure is None:
                        failure = (key, e)

            merged = self.cache.merge(results)
            if failure is not None:
                raise TileRenderError(failure[0]) from failure[1]

        if self.is_complete():
            self.cache.prune(self.viewport.generation)
        return merged

    def frame(self):
        """
        Snapshot of the tiles to display for the current view.

        Returns:
            Frame with the cached required tiles, filler from older
            generations within settings.filler_zoom_ratio of the current
            zoom (only while incomplete) and camera state
        """
        vp = self.viewport
        tiles = []
        complete = True
        for key in self.required_keys():
            image = self.cache.get(key)
            if image is None:
                complete = False
            else:
                tiles.append((key, image))

        filler = []
        if not complete:
            max_ratio = self.settings.filler_zoom_ratio
            filler = [
                (key, image) for key, image in self.cache.stale_items(vp.generation)
                if max(key.zoom / vp.zoom, vp.zoom / key.zoom) <= max_ratio
            ]
            # Closest zoom drawn last, on top
            filler.sort(key=lambda item: -abs(math.log(item[0].zoom / vp.zoom)))

        return Frame(
            tiles=tiles,
            center_x=vp.center_x,
            center_y=vp.center_y,
            zoom=vp.zoom,
            width=vp.width,
            height=vp.height,
            max_iter=vp.max_iter,
            complete=complete,
            filler=filler,
        )
