"""
Mandelbrot escape-time computation using Numba JIT compilation.

This module contains the performance-critical kernels used by the tile
renderer. All kernels are compiled with ``nogil=True`` so that the tile
scheduler's worker threads can run them truly in parallel.

Squaring always uses the identity

    real' = (real + imag) * (real - imag)
    imag' = 2 * real * imag

rather than ``real*real - imag*imag``. The two forms round differently, and
the escape counts (and therefore the colors) are only reproducible if every
code path uses the same one.
"""

from typing import NamedTuple

import numpy as np
from numba import jit


ESCAPE_RADIUS_SQ = 4.0  # |z|^2 threshold (escape radius 2)


class Complex(NamedTuple):
    """A point in the complex plane as a pair of 64-bit floats."""

    real: float
    imag: float


@jit(nopython=True, nogil=True, cache=True)
def _escape_iterations(cr, ci, max_iter):
    """Scalar escape-time kernel. Returns 0 if c does not escape."""
    zr = 0.0
    zi = 0.0
    for counter in range(1, max_iter + 1):
        zr, zi = (zr + zi) * (zr - zi) + cr, 2.0 * zr * zi + ci
        if zr * zr + zi * zi >= ESCAPE_RADIUS_SQ:
            return counter
    return 0


def escape_iterations(c, max_iter):
    """
    Count iterations of z <- z^2 + c until |z| >= 2.

    Args:
        c: Point to test; anything with ``real`` and ``imag`` attributes
            (a Python ``complex`` or a ``Complex``)
        max_iter: Iteration budget

    Returns:
        The 1-indexed iteration at which z escaped, or 0 if it stayed
        bounded for ``max_iter`` steps (presumed member of the set).
    """
    if max_iter <= 0:
        return 0
    return int(_escape_iterations(float(c.real), float(c.imag), int(max_iter)))


@jit(nopython=True, nogil=True, cache=True)
def compute_tile_iterations(origin_x, origin_y, zoom, size, max_iter, out, done):
    """
    Compute escape counts for one square tile, writing into ``out``.

    Pixel (px, py) of the tile maps to the fractal point
    ((origin_x + px) / zoom, (origin_y + py) / zoom). Pixels whose ``done``
    flag is already set (probed earlier) are skipped.

    Args:
        origin_x, origin_y: Tile origin in fractal-plane pixel units
        zoom: Pixels per unit of the complex plane
        size: Tile side length in pixels
        max_iter: Iteration budget
        out: int32 array (size, size), indexed [py, px], modified in place
        done: bool array (size, size), pixels to leave untouched
    """
    stepsize = 1.0 / zoom
    for py in range(size):
        ci = (origin_y + py) * stepsize
        for px in range(size):
            if done[py, px]:
                continue
            cr = (origin_x + px) * stepsize
            out[py, px] = _escape_iterations(cr, ci, max_iter)


@jit(nopython=True, nogil=True, cache=True)
def compute_point_iterations(origin_x, origin_y, zoom, max_iter, xs, ys, out):
    """Compute escape counts for an arbitrary list of tile pixels (probes)."""
    stepsize = 1.0 / zoom
    for i in range(xs.shape[0]):
        cr = (origin_x + xs[i]) * stepsize
        ci = (origin_y + ys[i]) * stepsize
        out[i] = _escape_iterations(cr, ci, max_iter)


def warmup_jit():
    """
    Warm up JIT compilation with tiny dummy inputs.

    Call this once at startup to pre-compile the Numba kernels,
    avoiding a stall on the first rendered frame.
    """
    _escape_iterations(0.0, 0.0, 1)
    out = np.zeros((2, 2), dtype=np.int32)
    done = np.zeros((2, 2), dtype=np.bool_)
    compute_tile_iterations(0, 0, 200, 2, 1, out, done)
    xs = np.zeros(1, dtype=np.int64)
    ys = np.zeros(1, dtype=np.int64)
    compute_point_iterations(0, 0, 200, 1, xs, ys, np.zeros(1, dtype=np.int32))
