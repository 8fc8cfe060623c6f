# planet_generator/sun.py

"""
================================================================================
ANIMATED SUN SURFACE
================================================================================
Per-vertex hybrid multifractal noise over an icosphere, drifting through the
noise domain over time to animate a star's surface.

Data Contract:
---------------
- Inputs (on initialization):
    - mesh (Icosphere): The sun's sphere.
    - noise_engine (NoiseEngine, optional): Defaults to a fixed-seed engine.
    - config (dict): Overrides for 'seed', 'period' and 'time_step'.
    - logger: A configured Python logging object.
- Public Methods:
    - advance(steps): Moves time forward and recomputes the noise map.
- Public Properties:
    - timer (float), noise_map (np.ndarray, (V,) in [0, 1]).
- Side Effects: Logs messages using the provided logger.
================================================================================
"""

import logging

import numpy as np

from . import config as DEFAULTS
from .errors import InvalidConfiguration
from .icosphere import Icosphere
from .noise import NoiseEngine

module_logger = logging.getLogger(__name__)


class Sun:
    """Noise-driven surface intensity for a star."""

    def __init__(self, mesh: Icosphere, noise_engine: NoiseEngine = None, config: dict = None,
                 logger: logging.Logger = None):
        self.logger = logger or module_logger
        self.user_config = dict(config or {})

        self.settings = {
            'period': self.user_config.get('period', DEFAULTS.DEFAULT_TERRAIN_PERIOD),
            'time_step': self.user_config.get('time_step', DEFAULTS.SUN_TIME_STEP),
        }

        if not (np.isfinite(self.settings['period']) and self.settings['period'] > 0):
            raise InvalidConfiguration(f"period must be finite and positive, got {self.settings['period']!r}")
        if not np.isfinite(self.settings['time_step']):
            raise InvalidConfiguration(f"time_step must be finite, got {self.settings['time_step']!r}")

        if noise_engine is None:
            self.settings['seed'] = self.user_config.get('seed', DEFAULTS.DEFAULT_SEED)
            noise_engine = NoiseEngine(
                config={
                    'seed': self.settings['seed'],
                    'octaves': DEFAULTS.SUN_NOISE_OCTAVES,
                    'offset': DEFAULTS.SUN_NOISE_OFFSET,
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
        self.mesh = mesh
        self.timer = 0.0
        self._noise_map = self._compute_noise_map()

    def _compute_noise_map(self) -> np.ndarray:
        # The same time offset is added to all three axes.
        coords = (self.mesh.vertices + self.timer) / self.settings['period']
        raw = np.asarray(self.noise_engine.hybrid_multifractal(coords), dtype=np.float64)

        low, high = raw.min(), raw.max()
        if high - low <= 0:
            self.logger.warning(f"Sun noise map is flat at t={self.timer:.2f}; using zeros.")
            normalized = np.zeros_like(raw)
        else:
            normalized = (raw - low) / (high - low)

        normalized.setflags(write=False)
        return normalized

    def advance(self, steps: int = 1) -> np.ndarray:
        """Moves the surface forward by `steps` time steps and returns the new map."""
        self.timer += self.settings['time_step'] * steps
        self._noise_map = self._compute_noise_map()
        return self._noise_map

    @property
    def noise_map(self) -> np.ndarray:
        return self._noise_map

    def buffers(self) -> dict:
        return {
            'positions': self.mesh.vertices,
            'normals': self.mesh.vertex_normals,
            'uvs': self.mesh.uvs,
            'indices': self.mesh.triangle_indices,
            'noise': self._noise_map,
        }
