# planet_generator/noise.py

"""
================================================================================
NOISE GENERATION UTILITIES
================================================================================
This module provides 3D gradient (Perlin) noise and the fractal compositing
schemes built on top of it: fractal Brownian motion (fBm) and the hybrid
multifractal.

The single-octave noise is any object satisfying the NoiseSource protocol.
The compositing in FractalNoise only ever calls `evaluate`, so new noise
variants can be plugged in without touching the fractal code.

Data Contract:
---------------
- Inputs:
    - A GradientTable (or a seed to build one).
    - Points as array-likes whose last axis has length 3. A single point
      (shape (3,)) evaluates to a Python float; a batch (shape (..., 3))
      evaluates to an array of shape (...).
    - octaves, lacunarity, H, offset: Standard fractal parameters.
- Outputs:
    - Noise values. Single-octave noise lies in [-1, 1]; fBm is bounded by
      the sum of the exponent array.
- Side Effects: Logs messages using the provided logger (NoiseEngine only).
- Invariants: Given the same seed and parameters, output is deterministic.
================================================================================
"""

import logging
from typing import Protocol

import numpy as np
from numba import njit

from . import config as DEFAULTS
from .errors import InvalidConfiguration
from .gradients import GradientTable, generate_gradient_table

module_logger = logging.getLogger(__name__)


class NoiseSource(Protocol):
    """Anything that can produce single-octave noise at a 3D point."""

    def evaluate(self, point):
        ...


@njit
def _lerp(a, b, t):
    "Linear interpolation."
    return a + t * (b - a)


@njit
def fade(t):
    "6t^5 - 15t^4 + 10t^3"
    return t * t * t * (t * (t * 6 - 15) + 10)


@njit
def _corner(permutation, gradients, xi, yi, zi, dx, dy, dz):
    """Dot product between a lattice corner's gradient and the offset to the point."""
    g = gradients[permutation[permutation[permutation[xi] + yi] + zi]]
    return g[0] * dx + g[1] * dy + g[2] * dz


@njit
def perlin_noise_3d(permutation, gradients, points):
    """
    Evaluate single-octave 3D gradient noise for every row of `points`.
    This function is JIT-compiled with Numba; it uses explicit loops, which
    Numba compiles to efficient machine code.
    """
    mask = gradients.shape[0] - 1
    count = points.shape[0]
    values = np.empty(count)

    for i in range(count):
        x = points[i, 0]
        y = points[i, 1]
        z = points[i, 2]

        fx = np.floor(x)
        fy = np.floor(y)
        fz = np.floor(z)

        x0 = int(fx) & mask
        y0 = int(fy) & mask
        z0 = int(fz) & mask
        x1 = (x0 + 1) & mask
        y1 = (y0 + 1) & mask
        z1 = (z0 + 1) & mask

        # Offsets from the lower (0) and upper (1) corners of the cell
        dx0 = x - fx
        dy0 = y - fy
        dz0 = z - fz
        dx1 = dx0 - 1.0
        dy1 = dy0 - 1.0
        dz1 = dz0 - 1.0

        d000 = _corner(permutation, gradients, x0, y0, z0, dx0, dy0, dz0)
        d100 = _corner(permutation, gradients, x1, y0, z0, dx1, dy0, dz0)
        d010 = _corner(permutation, gradients, x0, y1, z0, dx0, dy1, dz0)
        d110 = _corner(permutation, gradients, x1, y1, z0, dx1, dy1, dz0)
        d001 = _corner(permutation, gradients, x0, y0, z1, dx0, dy0, dz1)
        d101 = _corner(permutation, gradients, x1, y0, z1, dx1, dy0, dz1)
        d011 = _corner(permutation, gradients, x0, y1, z1, dx0, dy1, dz1)
        d111 = _corner(permutation, gradients, x1, y1, z1, dx1, dy1, dz1)

        u = fade(dx0)
        v = fade(dy0)
        w = fade(dz0)

        a = _lerp(d000, d100, u)
        b = _lerp(d010, d110, u)
        c = _lerp(d001, d101, u)
        d = _lerp(d011, d111, u)

        e = _lerp(a, b, v)
        f = _lerp(c, d, v)

        values[i] = _lerp(e, f, w)

    return values


def _as_points(point) -> np.ndarray:
    points = np.asarray(point, dtype=np.float64)
    if points.shape[-1:] != (3,):
        raise ValueError(f"Points must have a trailing axis of length 3, got shape {points.shape}")
    return points


def _unwrap(value):
    """Collapse 0-d results back to a Python float."""
    return float(value) if np.ndim(value) == 0 else value


class PerlinNoise:
    """Classic 3D Perlin noise over a seeded gradient table."""

    def __init__(self, table: GradientTable):
        self.table = table

    @classmethod
    def from_seed(cls, seed: int = DEFAULTS.DEFAULT_SEED,
                  table_size: int = DEFAULTS.DEFAULT_TABLE_SIZE,
                  correlated_angles: bool = DEFAULTS.DEFAULT_CORRELATED_ANGLES) -> "PerlinNoise":
        return cls(generate_gradient_table(seed, table_size, correlated_angles))

    def evaluate(self, point):
        points = _as_points(point)
        flat = np.ascontiguousarray(points.reshape(-1, 3))
        values = perlin_noise_3d(self.table.permutation, self.table.gradients, flat)
        if points.ndim == 1:
            return float(values[0])
        return values.reshape(points.shape[:-1])


def compute_exponent_array(octaves: int, lacunarity: float, H: float) -> np.ndarray:
    """Per-octave amplitude weights: lacunarity ** (-H * i) for i in [0, octaves)."""
    if isinstance(octaves, bool) or int(octaves) != octaves or octaves <= 0:
        raise InvalidConfiguration(f"octaves must be a positive integer, got {octaves!r}")
    if lacunarity <= 0:
        raise InvalidConfiguration(f"lacunarity must be positive, got {lacunarity!r}")

    exponents = np.power(float(lacunarity), -H * np.arange(int(octaves), dtype=np.float64))
    exponents.setflags(write=False)
    return exponents


class FractalNoise:
    """
    Composes a NoiseSource into multi-octave signals.

    Octaves share their phase: each one samples the same point scaled by
    lacunarity ** i, with no per-octave offset.
    """

    def __init__(self, source: NoiseSource, octaves: int = DEFAULTS.DEFAULT_OCTAVES,
                 lacunarity: float = DEFAULTS.DEFAULT_LACUNARITY, H: float = DEFAULTS.DEFAULT_H,
                 offset: float = DEFAULTS.DEFAULT_OFFSET):
        self._exponents = compute_exponent_array(octaves, lacunarity, H)
        self.source = source
        self.octaves = int(octaves)
        self.lacunarity = float(lacunarity)
        self.H = float(H)
        self.offset = float(offset)

    @property
    def exponents(self) -> np.ndarray:
        return self._exponents

    def evaluate(self, point):
        """Single-octave noise from the underlying source."""
        return self.source.evaluate(point)

    def fractal_brownian_motion(self, point):
        """Sum of octaves, each weighted by its exponent array entry."""
        points = _as_points(point)
        value = 0.0
        for exponent in self._exponents:
            value = value + self.source.evaluate(points) * exponent
            points = points * self.lacunarity
        return _unwrap(value)

    def _ridge(self, points):
        return 1.0 - np.abs(self.source.evaluate(points))

    def hybrid_multifractal(self, point):
        """
        Each octave after the first is scaled by a running weight (clamped to
        1) that is itself multiplied by every new signal. Low signals damp
        all following octaves, giving smooth plains next to rough ridges.
        """
        points = _as_points(point)

        value = (self._ridge(points) + self.offset) * self._exponents[0]
        weight = value
        points = points * self.lacunarity

        for exponent in self._exponents[1:]:
            weight = np.minimum(weight, 1.0)
            signal = (self._ridge(points) + self.offset) * exponent
            value = value + signal * weight
            weight = weight * signal
            points = points * self.lacunarity

        return _unwrap(value)


class NoiseEngine(FractalNoise):
    """
    Perlin-backed fractal noise configured from a settings dictionary.
    Instances are immutable; use `replace` to derive a reconfigured engine.
    """

    def __init__(self, config: dict = None, logger: logging.Logger = None):
        """
        Initializes the noise engine.

        Args:
            config (dict): User-defined parameters to override defaults.
            logger (logging.Logger): The logger instance for all output.
        """
        self.logger = logger or module_logger
        self.user_config = dict(config or {})

        # --- Consolidate Configuration ---
        self.settings = {
            'seed': self.user_config.get('seed', DEFAULTS.DEFAULT_SEED),
            'table_size': self.user_config.get('table_size', DEFAULTS.DEFAULT_TABLE_SIZE),
            'correlated_angles': self.user_config.get('correlated_angles', DEFAULTS.DEFAULT_CORRELATED_ANGLES),
            'H': self.user_config.get('H', DEFAULTS.DEFAULT_H),
            'lacunarity': self.user_config.get('lacunarity', DEFAULTS.DEFAULT_LACUNARITY),
            'offset': self.user_config.get('offset', DEFAULTS.DEFAULT_OFFSET),
            'octaves': self.user_config.get('octaves', DEFAULTS.DEFAULT_OCTAVES),
            'period': self.user_config.get('period', DEFAULTS.DEFAULT_TERRAIN_PERIOD),
            'plane_width': self.user_config.get('plane_width', DEFAULTS.DEFAULT_PLANE_WIDTH),
            'plane_height': self.user_config.get('plane_height', DEFAULTS.DEFAULT_PLANE_HEIGHT),
            'plane_period': self.user_config.get('plane_period', DEFAULTS.DEFAULT_PLANE_PERIOD),
        }

        for key in ('period', 'plane_period'):
            if not (np.isfinite(self.settings[key]) and self.settings[key] > 0):
                raise InvalidConfiguration(f"{key} must be finite and positive, got {self.settings[key]!r}")

        # --- Build Tables ---
        # The exponent array is validated first so bad octave counts fail
        # before the (larger) gradient table is generated.
        super().__init__(
            source=None,
            octaves=self.settings['octaves'],
            lacunarity=self.settings['lacunarity'],
            H=self.settings['H'],
            offset=self.settings['offset'],
        )
        self.source = PerlinNoise.from_seed(
            self.settings['seed'], self.settings['table_size'], self.settings['correlated_angles']
        )

        self.seed = self.settings['seed']
        self.period = float(self.settings['period'])

        self.logger.debug(f"Gradient table of size {self.source.table.size} built for seed {self.seed}.")
        self.logger.info(
            f"NoiseEngine initialized with seed: {self.seed} "
            f"(octaves={self.octaves}, lacunarity={self.lacunarity}, H={self.H}, offset={self.offset})"
        )

    @property
    def table(self) -> GradientTable:
        return self.source.table

    def replace(self, **overrides) -> "NoiseEngine":
        """Returns a new engine with the given settings changed and all tables rebuilt."""
        new_config = dict(self.settings)
        new_config.update(overrides)
        return NoiseEngine(config=new_config, logger=self.logger)

    def sample_plane(self, width: int = None, height: int = None, mode: str = DEFAULTS.NOISE_MODE_FBM) -> np.ndarray:
        """
        Samples the z = 0 plane at (i / plane_period, j / plane_period) for
        i in [0, width) and j in [0, height). Returns a (height, width) array.
        """
        width = self.settings['plane_width'] if width is None else width
        height = self.settings['plane_height'] if height is None else height
        if width <= 0 or height <= 0:
            raise InvalidConfiguration(f"Plane dimensions must be positive, got {width}x{height}")

        plane_period = self.settings['plane_period']
        xs = np.arange(width, dtype=np.float64) / plane_period
        ys = np.arange(height, dtype=np.float64) / plane_period
        xx, yy = np.meshgrid(xs, ys)
        points = np.stack([xx, yy, np.zeros_like(xx)], axis=-1)

        if mode == DEFAULTS.NOISE_MODE_FBM:
            return self.fractal_brownian_motion(points)
        if mode == DEFAULTS.NOISE_MODE_HYBRID:
            return self.hybrid_multifractal(points)
        raise InvalidConfiguration(f"Unknown noise mode '{mode}'")
