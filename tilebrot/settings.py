"""
Engine configuration.

Defaults live on the EngineSettings dataclass. A JSON file can override
any of them through its "engine" section:

    {
        "engine": {
            "tile_size": 32,
            "tiles_per_worker": 5
        }
    }

The bundled settings.json next to this module is read when no path is
given.
"""

import json
import os
from dataclasses import dataclass, fields, replace
from typing import Optional


DEFAULT_SETTINGS_PATH = os.path.join(os.path.dirname(__file__), 'settings.json')


@dataclass(frozen=True)
class EngineSettings:
    """Tunable parameters of the tile engine."""

    tile_size: int = 32            # Pixels per tile side
    tiles_per_worker: int = 5      # Count budget per step = workers * this
    probe_divisor: int = 12        # Probes per tile = tile area // this
    progressive: bool = True       # Probe before full-filling a tile
    zoom_step: float = 1.33        # Zoom multiplier per scroll step
    zoom_floor: int = 16
    zoom_ceiling: int = 2 ** 50    # float64 pixel spacing runs out around here
    filler_zoom_ratio: float = 8.0  # Older tiles further than this are not drawn
    iteration_floor: int = 100
    default_center_x: int = -100
    default_center_y: int = 0
    default_zoom: int = 200
    default_max_iter: int = 800
    workers: Optional[int] = None  # None = os.cpu_count()

    def __post_init__(self):
        for name in ('tile_size', 'tiles_per_worker', 'probe_divisor',
                     'zoom_floor', 'iteration_floor'):
            if getattr(self, name) < 1:
                raise ValueError(f"'{name}' must be at least 1, got {getattr(self, name)!r}")
        if self.zoom_step <= 1:
            raise ValueError(f"'zoom_step' must be greater than 1, got {self.zoom_step!r}")
        if self.zoom_ceiling < self.zoom_floor:
            raise ValueError(
                f"'zoom_ceiling' ({self.zoom_ceiling}) is below 'zoom_floor' ({self.zoom_floor})"
            )
        if self.filler_zoom_ratio < 1:
            raise ValueError(
                f"'filler_zoom_ratio' must be at least 1, got {self.filler_zoom_ratio!r}"
            )

    def resolved_workers(self):
        """Worker pool size, falling back to hardware parallelism."""
        if self.workers is not None:
            return max(1, self.workers)
        return os.cpu_count() or 1


def load_settings(path=None):
    """
    Load settings from a JSON file.

    Args:
        path: File to read (default: the bundled settings.json)

    Returns:
        Parsed JSON dict, or None if the file is missing or malformed
    """
    settings_path = path or DEFAULT_SETTINGS_PATH
    try:
        with open(settings_path, 'r') as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        print(f"Warning: Could not load {settings_path}: {e}")
        return None


def settings_from_dict(data):
    """
    Build EngineSettings from a parsed settings file.

    Unknown keys are ignored so older files keep working.

    Raises:
        ValueError if a known key has the wrong type or is out of range
    """
    settings = EngineSettings()
    if not data:
        return settings
    engine = data.get('engine', {})
    if not isinstance(engine, dict):
        raise ValueError("'engine' section must be an object")

    overrides = {}
    for field in fields(EngineSettings):
        if field.name not in engine:
            continue
        value = engine[field.name]
        default = getattr(settings, field.name)
        if field.name == 'workers':
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ValueError(f"'workers' must be an integer or null, got {value!r}")
            if value is not None and value < 1:
                raise ValueError(f"'workers' must be at least 1, got {value!r}")
        elif isinstance(default, bool):
            if not isinstance(value, bool):
                raise ValueError(f"'{field.name}' must be a boolean, got {value!r}")
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"'{field.name}' must be an integer, got {value!r}")
        elif isinstance(default, float):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"'{field.name}' must be a number, got {value!r}")
            value = float(value)
        overrides[field.name] = value
    return replace(settings, **overrides)


def get_settings(path=None):
    """Load and parse settings in one call, falling back to defaults."""
    return settings_from_dict(load_settings(path))
