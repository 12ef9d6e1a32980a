"""
Main application module for the tile viewer.

Contains the TileViewerApp class which handles:
- Window setup and main loop
- User input (zoom, pan, keyboard), forwarded to the TileScheduler
- Drawing cached tiles, with older zoom levels as filler underneath
- A small HUD with the coordinate under the cursor
"""

import math
from argparse import ArgumentParser
from dataclasses import replace

import pygame

from .compute import Complex, warmup_jit
from .scheduler import TileScheduler
from .settings import get_settings
from .viewport import ViewportState


VERBOSE = False


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


def tile_screen_rect(key, frame):
    """
    Screen rectangle of a tile under the frame's camera.

    Tiles from another zoom level are scaled by frame.zoom / key.zoom so
    they cover the same part of the fractal.

    Returns:
        (x, y, w, h) floats; x, y are the top-left corner in screen pixels
    """
    scale = frame.zoom / key.zoom
    top_x = frame.center_x - frame.width // 2
    top_y = frame.center_y - frame.height // 2
    size = key.tile_size * scale
    return (key.origin_x * scale - top_x, key.origin_y * scale - top_y, size, size)


def rect_visible(rect, width, height):
    """True if any part of rect (x, y, w, h) falls inside the window."""
    x, y, w, h = rect
    return x < width and y < height and x + w > 0 and y + h > 0


def cursor_coordinate(viewport, screen_x, screen_y):
    """
    Complex coordinate under the cursor, as shown in the HUD.

    Screen y grows downward, so the imaginary part is negated to make up
    the positive imaginary direction.
    """
    c = viewport.pixel_to_complex(screen_x, screen_y)
    return Complex(c.real, 0.0 - c.imag)


def format_float(n):
    """Fixed-width coordinate, with a space where the minus sign would go."""
    if n < 0.0:
        return f"{n:.16f}"
    return f" {n:.16f}"


class TileViewerApp:
    """
    Main application class for the tile viewer.

    Handles the pygame window and event loop; all fractal state lives in
    the TileScheduler.
    """

    # Default configuration
    DEFAULT_WIDTH = 1000
    DEFAULT_HEIGHT = 800
    FPS = 60
    HUD_FONT_SIZE = 22
    CAPTION = "Mandelbrot Tiles - Scroll to zoom, drag to pan, R to reset"

    def __init__(self, width=None, height=None, settings=None, seed=None):
        """
        Initialize the application.

        Args:
            width: Window width in pixels (default 1000)
            height: Window height in pixels (default 800)
            settings: EngineSettings (default: bundled settings.json)
            seed: Seed for tile probe sampling
        """
        self.width = width or self.DEFAULT_WIDTH
        self.height = height or self.DEFAULT_HEIGHT
        self.settings = settings or get_settings()
        self.seed = seed

        # Pygame state (initialized in run())
        self.screen = None
        self.clock = None
        self.font = None

        self.engine = None
        self.surfaces = {}  # TileKey -> pygame.Surface
        self.was_complete = False

        # Input state
        self.dragging = False
        self.drag_last = None

        self.running = False

    def run(self):
        """Run the application main loop."""
        self._init_pygame()
        self._init_components()

        self.running = True
        try:
            while self.running:
                self._handle_events()
                self._step()
                self._draw()
                self.clock.tick(self.FPS)
        finally:
            if self.engine is not None:
                self.engine.close()
            pygame.quit()

    def _init_pygame(self):
        """Initialize pygame and create window."""
        pygame.init()
        self.screen = pygame.display.set_mode(
            (self.width, self.height),
            pygame.RESIZABLE
        )
        self.clock = pygame.time.Clock()
        self.font = pygame.font.Font(None, self.HUD_FONT_SIZE)

    def _init_components(self):
        """Warm up the JIT and create the engine."""
        pygame.display.set_caption("Compiling (first run only)...")
        warmup_jit()
        viewport = ViewportState.default(self.width, self.height, self.settings)
        self.engine = TileScheduler(viewport, self.settings, seed=self.seed)
        log(f"Engine ready: {self.engine.workers} workers, "
            f"{self.engine.budget} tiles per step")
        pygame.display.set_caption(self.CAPTION)

    def _handle_events(self):
        """Process all pending pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.MOUSEWHEEL:
                self._handle_zoom(event)
            elif event.type == pygame.MOUSEBUTTONDOWN:
                self._handle_mouse_down(event)
            elif event.type == pygame.MOUSEBUTTONUP:
                self._handle_mouse_up(event)
            elif event.type == pygame.MOUSEMOTION:
                self._handle_mouse_motion(event)
            elif event.type == pygame.VIDEORESIZE:
                self._handle_resize(event)
            elif event.type == pygame.KEYDOWN:
                self._handle_key(event)

    def _handle_zoom(self, event):
        """Handle mouse wheel zoom about the cursor."""
        mx, my = pygame.mouse.get_pos()
        pivot_x = mx - self.width // 2
        pivot_y = my - self.height // 2
        if self.engine.zoom(event.y, pivot_x, pivot_y):
            log(f"Zoom {self.engine.viewport.zoom}")

    def _handle_mouse_down(self, event):
        """Handle mouse button press."""
        if event.button == 1:  # Left click
            self.dragging = True
            self.drag_last = event.pos

    def _handle_mouse_up(self, event):
        """Handle mouse button release."""
        if event.button == 1:
            self.dragging = False
            self.drag_last = None

    def _handle_mouse_motion(self, event):
        """Pan while dragging: the picture follows the cursor."""
        if self.dragging and self.drag_last:
            mx, my = event.pos
            self.engine.pan(self.drag_last[0] - mx, self.drag_last[1] - my)
            self.drag_last = (mx, my)

    def _handle_resize(self, event):
        """Handle window resize."""
        self.width, self.height = max(1, event.w), max(1, event.h)
        self.screen = pygame.display.get_surface()
        self.engine.resize(self.width, self.height)

    def _handle_key(self, event):
        """Handle keyboard input."""
        viewport = self.engine.viewport
        if event.key == pygame.K_r:
            self.engine.reset()
            self.surfaces.clear()
        elif event.key == pygame.K_UP:
            self.engine.set_iterations(viewport.max_iter)
            log(f"Max iterations {viewport.max_iter}")
        elif event.key == pygame.K_DOWN:
            self.engine.set_iterations(-(viewport.max_iter // 2))
            log(f"Max iterations {viewport.max_iter}")
        elif event.key == pygame.K_F11:
            pygame.display.toggle_fullscreen()
        elif event.key == pygame.K_ESCAPE:
            self.running = False

    def _step(self):
        """Run one render step and report frame completion."""
        merged = self.engine.step()
        complete = self.engine.is_complete()
        if merged:
            log(f"Rendered {merged} tiles ({len(self.engine.cache)} cached)")
        if complete and not self.was_complete:
            log("Frame complete")
        self.was_complete = complete

    def _surface_for(self, key, image):
        """Get (or create) the pygame surface for a tile image."""
        surface = self.surfaces.get(key)
        if surface is None:
            surface = pygame.image.frombuffer(
                image.tobytes(), (key.tile_size, key.tile_size), 'RGBA'
            )
            self.surfaces[key] = surface
        return surface

    def _draw(self):
        """Draw the current frame."""
        frame = self.engine.frame()
        self.screen.fill((0, 0, 0))

        # Filler first so current tiles overdraw it
        for key, image in frame.filler:
            self._blit_tile(key, image, frame)
        for key, image in frame.tiles:
            self._blit_tile(key, image, frame)

        # Drop surfaces for tiles that left the cache
        for key in [k for k in self.surfaces if k not in self.engine.cache]:
            del self.surfaces[key]

        self._draw_hud(frame)
        pygame.display.flip()

    def _blit_tile(self, key, image, frame):
        """Blit one tile, scaling it if it comes from another zoom level."""
        rect = tile_screen_rect(key, frame)
        if key.tile_size <= 0 or not rect_visible(rect, frame.width, frame.height):
            return
        surface = self._surface_for(key, image)
        x, y, w, _ = rect
        left = math.floor(x)
        top = math.floor(y)
        if key.zoom != frame.zoom:
            side = max(1, math.ceil(x + w) - left)
            surface = pygame.transform.scale(surface, (side, side))
        self.screen.blit(surface, (left, top))

    def _draw_hud(self, frame):
        """Draw the cursor coordinate, iteration budget and zoom."""
        mx, my = pygame.mouse.get_pos()
        c = cursor_coordinate(self.engine.viewport, mx, my)
        lines = [
            f"C: {format_float(c.real)} + {format_float(c.imag)}i",
            f"Max iterations: {frame.max_iter}",
            f"Zoom: {frame.zoom / self.settings.default_zoom:.2f}",
        ]
        if not frame.complete:
            lines.append("Computing...")
        y = 10
        for line in lines:
            text = self.font.render(line, True, (255, 255, 255))
            self.screen.blit(text, (10, y))
            y += self.HUD_FONT_SIZE


def build_parser():
    parser = ArgumentParser(prog='tilebrot', description='Interactive tiled Mandelbrot viewer')

    parser.add_argument('--width', type=int, default=TileViewerApp.DEFAULT_WIDTH,
                        help='window width in pixels')
    parser.add_argument('--height', type=int, default=TileViewerApp.DEFAULT_HEIGHT,
                        help='window height in pixels')
    parser.add_argument('--max-iter', type=int, dest='max_iter', default=None,
                        help='starting iteration budget (default from settings)')
    parser.add_argument('--tile-size', type=int, dest='tile_size', default=None,
                        help='pixels per tile side (default from settings)')
    parser.add_argument('--settings', type=str, default=None,
                        help='path to a settings JSON file')
    parser.add_argument('--seed', type=int, default=None,
                        help='seed for tile probe sampling')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='print engine progress')
    return parser


def settings_from_args(args):
    """Apply command-line overrides on top of the settings file."""
    settings = get_settings(args.settings)
    overrides = {}
    if args.max_iter is not None:
        overrides['default_max_iter'] = args.max_iter
    if args.tile_size is not None:
        overrides['tile_size'] = args.tile_size
    return replace(settings, **overrides)


def run(width=None, height=None, settings=None, seed=None):
    """
    Run the tile viewer.

    Args:
        width: Window width (default 1000)
        height: Window height (default 800)
        settings: EngineSettings (default: bundled settings.json)
        seed: Seed for tile probe sampling
    """
    app = TileViewerApp(width, height, settings, seed)
    try:
        app.run()
    except KeyboardInterrupt:
        pass


def main(argv=None):
    global VERBOSE
    args = build_parser().parse_args(argv)
    VERBOSE = args.verbose
    run(args.width, args.height, settings_from_args(args), args.seed)
