"""
Tiled Mandelbrot Engine

An interactive, pannable and zoomable Mandelbrot viewer built around a
cache of square tiles. Tiles are rendered on a thread pool with
Numba-compiled kernels, a few per frame, so the view stays responsive
while deep regions fill in.

Quick Start:
    from tilebrot import run
    run()

Or from command line:
    python -m tilebrot

Headless use:
    from tilebrot import TileScheduler, ViewportState
    with TileScheduler(ViewportState.default(800, 600), seed=0) as engine:
        while not engine.is_complete():
            engine.step()
        frame = engine.frame()

Package Structure:
    - compute.py: JIT-compiled escape-time kernels
    - colormaps.py: Cyclic 161-slot palette
    - tiles.py: TileKey and progressive tile rendering
    - viewport.py: Camera state and pan/zoom/resize commands
    - cache.py: Tile cache with generation pruning
    - scheduler.py: Budgeted parallel tile fill
    - settings.py: Engine configuration (settings.json)
    - app.py: Pygame window and event loop

Controls:
    - Scroll: Zoom in/out at mouse position
    - Drag: Pan around
    - Up/Down: Double/halve max iterations
    - R: Reset to default view
    - F11: Toggle fullscreen
    - ESC: Quit
"""

from .app import run, main, TileViewerApp
from .cache import TileCache
from .colormaps import color_for, apply_palette
from .compute import Complex, escape_iterations
from .scheduler import Frame, TileRenderError, TileScheduler, required_tile_keys
from .settings import EngineSettings, get_settings
from .tiles import TileKey, render_tile, render_tile_full
from .viewport import ViewportState

__version__ = "1.0.0"
__all__ = [
    "run",
    "main",
    "TileViewerApp",
    "TileCache",
    "color_for",
    "apply_palette",
    "Complex",
    "escape_iterations",
    "Frame",
    "TileRenderError",
    "TileScheduler",
    "required_tile_keys",
    "EngineSettings",
    "get_settings",
    "TileKey",
    "render_tile",
    "render_tile_full",
    "ViewportState",
]
