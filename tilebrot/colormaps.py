"""
Cyclic palette for Mandelbrot tiles.

Escape counts are mapped onto a hue wheel with 161 slots. Consecutive
counts advance the hue by three slots, so neighbouring bands contrast
strongly while the palette repeats every 161 iterations. Interior points
(escape count 0) are opaque black.

The palette is precomputed as a (161, 4) RGBA table so whole tiles can be
colored with a single fancy-indexing operation; ``color_for`` and the table
share one formula and always agree.
"""

import math

import numpy as np


PALETTE_SIZE = 161  # Hue slots on the color wheel
PALETTE_OFFSET = 30  # Fixed rotation of the hue wheel
INTERIOR_COLOR = (0, 0, 0, 255)


def _channel(value):
    """Map a value in [-1, 1] to an 8-bit channel."""
    return int(round((value * 0.5 + 0.5) * 255)) & 0xFF


def _color_for_slot(slot):
    """RGBA color for a palette slot in [0, PALETTE_SIZE)."""
    limited = slot + PALETTE_OFFSET
    hue = (limited / PALETTE_SIZE) * 2.0 * math.pi
    return (
        _channel(math.sin(hue)),
        _channel(math.cos(hue)),
        _channel(math.cos(hue + math.pi / 2.0)),
        255,
    )


def color_for(iterations):
    """
    Get the RGBA color for an escape count.

    Args:
        iterations: Escape count from ``escape_iterations`` (0 = interior)

    Returns:
        Tuple (r, g, b, a) of ints in [0, 255]
    """
    if iterations == 0:
        return INTERIOR_COLOR
    return _color_for_slot((3 * int(iterations)) % PALETTE_SIZE)


def create_palette_cyclic():
    """
    Build the palette lookup table.

    Returns:
        uint8 array (PALETTE_SIZE, 4); entry k is the color of every
        escape count n with (3 * n) % PALETTE_SIZE == k
    """
    colors = np.zeros((PALETTE_SIZE, 4), dtype=np.uint8)
    for slot in range(PALETTE_SIZE):
        colors[slot] = _color_for_slot(slot)
    return colors


PALETTE = create_palette_cyclic()


def apply_palette(iterations):
    """
    Color a buffer of escape counts.

    Args:
        iterations: Integer array of any 2D shape (h, w)

    Returns:
        uint8 RGBA array (h, w, 4)
    """
    iterations = np.asarray(iterations, dtype=np.int64)
    rgba = PALETTE[(3 * iterations) % PALETTE_SIZE]
    rgba[iterations == 0] = INTERIOR_COLOR
    return rgba
