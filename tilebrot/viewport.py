"""
Viewport state: what part of the fractal plane is on screen.

Coordinates are integer "fractal-plane pixels": the complex number shown
by pixel (x, y) is (x / zoom) + (y / zoom)i. Screen y grows downward and so
does the imaginary coordinate; the set is symmetric about the real axis so
the picture is unaffected.
"""

from dataclasses import dataclass, field

from .compute import Complex
from .settings import EngineSettings


@dataclass
class ViewportState:
    """
    Size, camera and iteration budget of the current view.

    Attributes:
        width, height: View size in screen pixels
        center_x, center_y: Fractal-plane pixel under the view center
        zoom: Pixels per unit of the complex plane (integer)
        max_iter: Iteration budget
        settings: Floors, zoom step and defaults
    """

    width: int
    height: int
    center_x: int
    center_y: int
    zoom: int
    max_iter: int
    settings: EngineSettings = field(default_factory=EngineSettings, compare=False, repr=False)

    def __post_init__(self):
        self.width = max(1, int(self.width))
        self.height = max(1, int(self.height))
        self.zoom = self._clamp_zoom(self.zoom)
        self.max_iter = max(int(self.max_iter), self.settings.iteration_floor)

    @classmethod
    def default(cls, width, height, settings=None):
        """Create the starting view (whole set, centered slightly left)."""
        settings = settings or EngineSettings()
        return cls(
            width=width,
            height=height,
            center_x=settings.default_center_x,
            center_y=settings.default_center_y,
            zoom=settings.default_zoom,
            max_iter=settings.default_max_iter,
            settings=settings,
        )

    def _clamp_zoom(self, zoom):
        """Keep zoom within settings.zoom_floor and settings.zoom_ceiling."""
        return int(min(max(zoom, self.settings.zoom_floor), self.settings.zoom_ceiling))

    @property
    def generation(self):
        """(zoom, max_iter): tiles of any other generation are stale."""
        return (self.zoom, self.max_iter)

    def top_left(self):
        """Fractal-plane pixel at the top-left corner of the view."""
        return (self.center_x - self.width // 2, self.center_y - self.height // 2)

    def pixel_to_complex(self, screen_x, screen_y):
        """Complex coordinate under a screen pixel (offset from the top-left)."""
        top_x, top_y = self.top_left()
        return Complex((top_x + screen_x) / self.zoom, (top_y + screen_y) / self.zoom)

    def pan(self, dx, dy):
        """Move the camera by a pixel delta. Never invalidates tiles."""
        self.center_x += int(dx)
        self.center_y += int(dy)

    def zoom_by(self, steps, pivot_x=0, pivot_y=0):
        """
        Zoom in (steps > 0) or out (steps < 0) about a screen point.

        Args:
            steps: Scroll steps; each multiplies zoom by settings.zoom_step,
                clamped to [zoom_floor, zoom_ceiling]
            pivot_x, pivot_y: Screen point to hold fixed, as a pixel offset
                from the view center

        Returns:
            True if the zoom level changed
        """
        old_zoom = self.zoom
        new_zoom = self._clamp_zoom(old_zoom * self.settings.zoom_step ** steps)
        if new_zoom == old_zoom:
            return False
        ratio = new_zoom / old_zoom
        # The fractal point under the pivot is (center + pivot) / zoom
        self.center_x = round((self.center_x + pivot_x) * ratio - pivot_x)
        self.center_y = round((self.center_y + pivot_y) * ratio - pivot_y)
        self.zoom = new_zoom
        return True

    def resize(self, new_width, new_height):
        """
        Change the view size, keeping the visible vertical extent.

        Zoom scales with the height ratio and the center is rescaled by the
        same factor, so the point at the old view center stays centered.

        Returns:
            True if the zoom level changed
        """
        new_width = max(1, int(new_width))
        new_height = max(1, int(new_height))
        old_zoom = self.zoom
        new_zoom = self._clamp_zoom(old_zoom * new_height / self.height)
        self.width = new_width
        self.height = new_height
        if new_zoom == old_zoom:
            return False
        ratio = new_zoom / old_zoom
        self.center_x = round(self.center_x * ratio)
        self.center_y = round(self.center_y * ratio)
        self.zoom = new_zoom
        return True

    def set_iterations(self, delta):
        """
        Adjust the iteration budget, floored at settings.iteration_floor.

        Returns:
            True if max_iter changed
        """
        new_max_iter = max(self.max_iter + int(delta), self.settings.iteration_floor)
        changed = new_max_iter != self.max_iter
        self.max_iter = new_max_iter
        return changed

    def reset(self):
        """Restore the default camera and iteration budget, keeping the size."""
        self.center_x = self.settings.default_center_x
        self.center_y = self.settings.default_center_y
        self.zoom = self._clamp_zoom(self.settings.default_zoom)
        self.max_iter = max(self.settings.default_max_iter, self.settings.iteration_floor)
