# planet_generator/terrain.py

"""
================================================================================
TERRAIN DISPLACEMENT
================================================================================
This module turns an icosphere into a planet: it samples fractal noise at
every vertex to produce a height, then recomputes shading normals for the
surface displaced by those heights.

Data Contract:
---------------
- Inputs:
    - mesh (Icosphere): A fully built geodesic sphere.
    - noise_engine (NoiseEngine): Source of fBm and hybrid multifractal noise.
    - config (dict): Overrides for the terrain shaping defaults.
    - logger: A configured Python logging object for runtime messages.
- Outputs:
    - heights (np.ndarray): (V,) float64, one height per vertex.
    - surface_normals (np.ndarray): (V, 3) float64 unit normals of the
      displaced surface.
- Side Effects: Logs messages using the provided logger.
- Invariants:
    - len(vertices) == len(uvs) == len(heights) == len(surface_normals).
    - Given the same mesh, seed and configuration, output is deterministic.
    - Heights and normals are always recomputed in full, never patched.
================================================================================
"""

import logging
import math

import numpy as np

from . import config as DEFAULTS
from .errors import InvalidConfiguration
from .icosphere import Icosphere
from .noise import NoiseEngine

module_logger = logging.getLogger(__name__)


def compute_height_map(mesh: Icosphere, noise_engine: NoiseEngine, period: float = None,
                       continent_threshold: float = DEFAULTS.CONTINENT_THRESHOLD,
                       continent_weight: float = DEFAULTS.CONTINENT_WEIGHT,
                       ridge_threshold: float = DEFAULTS.RIDGE_THRESHOLD,
                       ridge_boost: float = DEFAULTS.RIDGE_BOOST,
                       relief_exponent: float = DEFAULTS.RELIEF_EXPONENT) -> np.ndarray:
    """
    Samples terrain noise at each world-space vertex position.

    1. Base terrain is fBm at position / period.
    2. Where it rises above the continent threshold, a hybrid multifractal
       layer is blended in, more strongly the closer the base is to 0.
    3. Values above the ridge threshold get an extra boost.
    4. The result is scaled by radius ** relief_exponent.
    """
    period = noise_engine.period if period is None else period
    if not (np.isfinite(period) and period > 0):
        raise InvalidConfiguration(f"period must be finite and positive, got {period!r}")

    coords = mesh.vertices / period

    # 1. Base and continent layers
    heights = np.array(noise_engine.fractal_brownian_motion(coords), dtype=np.float64)
    continent = np.asarray(noise_engine.hybrid_multifractal(coords)) * continent_weight

    # 2. Continent shaping
    land = heights > continent_threshold
    heights[land] += (1.0 - heights[land]) * continent[land]

    # 3. Ridge exaggeration
    ridges = heights > ridge_threshold
    heights[ridges] += ridge_boost * (1.0 - (heights[ridges] - ridge_threshold))

    # 4. Keep relief proportional to planet scale
    return heights * mesh.radius ** relief_exponent


def compute_surface_normals(mesh: Icosphere, heights: np.ndarray, logger: logging.Logger = None) -> np.ndarray:
    """
    Averages the face normals of the displaced surface around each vertex.

    Each corner is pushed along its own outward normal by its own height, so
    a face is displaced per vertex rather than as a whole. Accumulation goes
    through the mesh's vertex/face incidence matrix, so the cost is linear in
    the number of faces. A vertex without faces keeps its outward normal.
    """
    logger = logger or module_logger
    heights = np.asarray(heights, dtype=np.float64)
    if heights.shape != (mesh.vertex_count,):
        raise ValueError(f"Expected {mesh.vertex_count} heights, got shape {heights.shape}")

    outward = mesh.vertex_normals
    displaced = mesh.vertices + outward * heights[:, np.newaxis]

    faces = mesh.faces
    a = displaced[faces[:, 0]]
    b = displaced[faces[:, 1]]
    c = displaced[faces[:, 2]]
    # The cross product of the two edges leaving any corner is the same
    # vector for all three corners of a triangle.
    face_normals = np.cross(b - a, c - a)

    sums = np.asarray(mesh.incidence @ face_normals)
    counts = np.asarray(mesh.incidence.sum(axis=1)).ravel()

    normals = np.array(outward, dtype=np.float64)
    connected = counts > 0
    average = sums[connected] / counts[connected, np.newaxis]
    lengths = np.linalg.norm(average, axis=1)

    usable = lengths > DEFAULTS.NORMAL_EPSILON
    connected_idx = np.flatnonzero(connected)
    normals[connected_idx[usable]] = average[usable] / lengths[usable, np.newaxis]

    fallback = mesh.vertex_count - int(np.count_nonzero(usable))
    if fallback:
        logger.warning(f"{fallback} vertices kept their outward normal (isolated or degenerate neighbourhood).")

    return normals


class Planet:
    """
    A displaced icosphere with its height map and surface normals.
    This class is backend-only and does not handle any rendering.
    """

    def __init__(self, mesh: Icosphere, noise_engine: NoiseEngine = None, config: dict = None,
                 logger: logging.Logger = None):
        """
        Initializes the planet and computes its terrain.

        Args:
            mesh (Icosphere): The sphere to displace.
            noise_engine (NoiseEngine, optional): A pre-built engine. If None,
                one is built from the config's 'seed' with the terrain octave
                count and offset.
            config (dict): User-defined parameters to override defaults.
            logger (logging.Logger): The logger instance for all output.
        """
        self.logger = logger or module_logger
        self.user_config = dict(config or {})

        # --- Consolidate Configuration ---
        self.settings = {
            'period': self.user_config.get(
                'period', noise_engine.period if noise_engine is not None else DEFAULTS.DEFAULT_TERRAIN_PERIOD
            ),
            'continent_threshold': self.user_config.get('continent_threshold', DEFAULTS.CONTINENT_THRESHOLD),
            'continent_weight': self.user_config.get('continent_weight', DEFAULTS.CONTINENT_WEIGHT),
            'ridge_threshold': self.user_config.get('ridge_threshold', DEFAULTS.RIDGE_THRESHOLD),
            'ridge_boost': self.user_config.get('ridge_boost', DEFAULTS.RIDGE_BOOST),
            'relief_exponent': self.user_config.get('relief_exponent', DEFAULTS.RELIEF_EXPONENT),
            'water_radius_factor': self.user_config.get('water_radius_factor', DEFAULTS.WATER_RADIUS_FACTOR),
            'water_recursions': self.user_config.get('water_recursions', DEFAULTS.WATER_RECURSIONS),
        }

        # The water shell is only built on demand, so its settings are checked here.
        factor = self.settings['water_radius_factor']
        if not (math.isfinite(factor) and factor > 0):
            raise InvalidConfiguration(f"water_radius_factor must be finite and positive, got {factor!r}")
        depth = self.settings['water_recursions']
        if isinstance(depth, bool) or int(depth) != depth or depth < 0:
            raise InvalidConfiguration(f"water_recursions must be a non-negative integer, got {depth!r}")

        if noise_engine is None:
            self.settings['seed'] = self.user_config.get('seed', DEFAULTS.DEFAULT_SEED)
            noise_engine = NoiseEngine(
                config={
                    'seed': self.settings['seed'],
                    'octaves': DEFAULTS.TERRAIN_NOISE_OCTAVES,
                    'offset': DEFAULTS.TERRAIN_NOISE_OFFSET,
                    'period': self.settings['period'],
                },
                logger=self.logger,
            )
        elif 'seed' in self.user_config:
            self.logger.warning(
                f"Config seed {self.user_config['seed']!r} ignored; "
                f"the supplied noise engine uses seed {noise_engine.seed}."
            )
        self.noise_engine = noise_engine
        self.mesh = None
        self.set_mesh(mesh)

    def set_mesh(self, mesh: Icosphere):
        """Replaces the mesh and recomputes heights and normals in full."""
        self.mesh = mesh
        self._recalculate()

    def set_noise_engine(self, noise_engine: NoiseEngine):
        """Replaces the noise engine (e.g. a new seed) and recomputes everything."""
        self.noise_engine = noise_engine
        self._recalculate()

    def _recalculate(self):
        self.logger.info(
            f"Displacing {self.mesh.vertex_count} vertices with seed {self.noise_engine.seed}..."
        )
        heights = compute_height_map(
            self.mesh, self.noise_engine,
            period=self.settings['period'],
            continent_threshold=self.settings['continent_threshold'],
            continent_weight=self.settings['continent_weight'],
            ridge_threshold=self.settings['ridge_threshold'],
            ridge_boost=self.settings['ridge_boost'],
            relief_exponent=self.settings['relief_exponent'],
        )
        normals = compute_surface_normals(self.mesh, heights, logger=self.logger)

        heights.setflags(write=False)
        normals.setflags(write=False)
        self._heights = heights
        self._surface_normals = normals
        self.logger.debug(f"Height range: [{heights.min():.4f}, {heights.max():.4f}]")

    @property
    def heights(self) -> np.ndarray:
        return self._heights

    @property
    def surface_normals(self) -> np.ndarray:
        return self._surface_normals

    def build_water_shell(self) -> Icosphere:
        """A sea-level sphere slightly larger than the planet, sharing its center."""
        return Icosphere(
            center=self.mesh.center,
            radius=self.mesh.radius * self.settings['water_radius_factor'],
            recursions=self.settings['water_recursions'],
            logger=self.logger,
        )

    def buffers(self) -> dict:
        """Every per-vertex array a renderer needs, plus the index buffer."""
        return {
            'positions': self.mesh.vertices,
            'normals': self.mesh.vertex_normals,
            'uvs': self.mesh.uvs,
            'indices': self.mesh.triangle_indices,
            'heights': self._heights,
            'surface_normals': self._surface_normals,
        }
