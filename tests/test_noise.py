"""Tests for Perlin noise and the fractal compositing built on it."""

import numpy as np
import pytest

from planet_generator.errors import InvalidConfiguration
from planet_generator.noise import (
    FractalNoise,
    NoiseEngine,
    PerlinNoise,
    compute_exponent_array,
    fade,
)

TERRAIN_CONFIG = {'seed': 2021, 'octaves': 8, 'lacunarity': 2.0, 'H': 0.9, 'offset': 0.0, 'period': 20.0}


class ConstantSource:
    """A NoiseSource that returns the same value everywhere."""

    def __init__(self, value):
        self.value = value

    def evaluate(self, point):
        points = np.asarray(point, dtype=np.float64)
        return np.full(points.shape[:-1], self.value)


@pytest.fixture(scope="module")
def engine():
    return NoiseEngine(config=TERRAIN_CONFIG)


@pytest.fixture(scope="module")
def random_points():
    rng = np.random.default_rng(1234)
    return rng.uniform(-100.0, 100.0, size=(10000, 3))


class TestFade:
    def test_endpoints_and_midpoint(self):
        assert fade(0.0) == 0.0
        assert fade(1.0) == 1.0
        assert fade(0.5) == pytest.approx(0.5)


class TestPerlinEvaluate:
    def test_identical_engines_agree(self, random_points):
        a = NoiseEngine(config=TERRAIN_CONFIG)
        b = NoiseEngine(config=TERRAIN_CONFIG)
        assert np.array_equal(a.table.gradients, b.table.gradients)
        assert np.array_equal(a.table.permutation, b.table.permutation)
        assert np.array_equal(a.evaluate(random_points), b.evaluate(random_points))
        assert a.evaluate((0.3, -1.7, 4.2)) == b.evaluate((0.3, -1.7, 4.2))

    def test_bounded(self, engine, random_points):
        values = engine.evaluate(random_points)
        assert values.shape == (10000,)
        assert np.all(values >= -1.0)
        assert np.all(values <= 1.0)

    def test_zero_on_lattice_points(self, engine):
        lattice = np.array([[0, 0, 0], [3, -2, 7], [-5, -5, -5], [511, 512, 1000]], dtype=np.float64)
        np.testing.assert_array_equal(engine.evaluate(lattice), 0.0)

    def test_single_point_matches_batch(self, engine, random_points):
        batch = engine.evaluate(random_points[:10])
        for point, expected in zip(random_points[:10], batch):
            value = engine.evaluate(point)
            assert isinstance(value, float)
            assert value == expected

    def test_batch_shape_is_preserved(self, engine, random_points):
        grid = random_points[:12].reshape(3, 4, 3)
        assert engine.evaluate(grid).shape == (3, 4)

    def test_not_constant(self, engine, random_points):
        assert np.std(engine.evaluate(random_points)) > 0.05

    def test_rejects_wrong_dimension(self, engine):
        with pytest.raises(ValueError):
            engine.evaluate((1.0, 2.0))

    def test_from_seed(self):
        noise = PerlinNoise.from_seed(seed=5, table_size=64)
        assert noise.table.size == 64
        assert -1.0 <= noise.evaluate((0.5, 0.25, 0.75)) <= 1.0


class TestExponentArray:
    def test_values(self):
        exponents = compute_exponent_array(8, 2.0, 0.9)
        np.testing.assert_allclose(exponents, [2.0 ** (-0.9 * i) for i in range(8)])
        assert exponents[0] == 1.0

    @pytest.mark.parametrize("octaves", [0, -1, 2.5])
    def test_invalid_octaves(self, octaves):
        with pytest.raises(InvalidConfiguration):
            compute_exponent_array(octaves, 2.0, 0.9)

    def test_invalid_lacunarity(self):
        with pytest.raises(InvalidConfiguration):
            compute_exponent_array(4, 0.0, 0.9)

    def test_engine_rejects_zero_octaves(self):
        with pytest.raises(InvalidConfiguration):
            NoiseEngine(config={'octaves': 0})


class TestFractalBrownianMotion:
    def test_bounded_by_exponent_sum(self, engine, random_points):
        values = engine.fractal_brownian_motion(random_points)
        assert np.all(np.abs(values) <= engine.exponents.sum())

    def test_single_octave_is_plain_noise(self):
        one = NoiseEngine(config={'seed': 3, 'octaves': 1})
        point = (1.3, 2.7, -0.4)
        assert one.fractal_brownian_motion(point) == pytest.approx(one.evaluate(point))

    def test_octaves_share_phase(self):
        two = NoiseEngine(config={'seed': 3, 'octaves': 2, 'lacunarity': 2.0, 'H': 0.9})
        p = np.array([1.3, 2.7, -0.4])
        expected = two.evaluate(p) + two.evaluate(p * 2.0) * 2.0 ** -0.9
        assert two.fractal_brownian_motion(p) == pytest.approx(expected)

    def test_generic_source(self):
        fractal = FractalNoise(ConstantSource(0.5), octaves=4, lacunarity=2.0, H=1.0)
        value = fractal.fractal_brownian_motion(np.zeros((5, 3)))
        np.testing.assert_allclose(value, 0.5 * (1 + 0.5 + 0.25 + 0.125))


class TestHybridMultifractal:
    def test_single_octave(self):
        one = NoiseEngine(config={'seed': 3, 'octaves': 1, 'offset': 0.1})
        p = (0.2, 0.9, 1.6)
        assert one.hybrid_multifractal(p) == pytest.approx(1.0 - abs(one.evaluate(p)) + 0.1)

    def test_three_octaves_by_hand(self):
        e = NoiseEngine(config={'seed': 9, 'octaves': 3, 'lacunarity': 2.0, 'H': 0.5, 'offset': 0.2})
        p = np.array([0.37, -1.21, 2.05])
        w = e.exponents

        value = (1 - abs(e.evaluate(p)) + 0.2) * w[0]
        weight = value
        for i in (1, 2):
            weight = min(weight, 1.0)
            signal = (1 - abs(e.evaluate(p * 2.0 ** i)) + 0.2) * w[i]
            value += signal * weight
            weight *= signal

        assert e.hybrid_multifractal(p) == pytest.approx(value)

    def test_generic_source_weights(self):
        fractal = FractalNoise(ConstantSource(0.5), octaves=2, lacunarity=2.0, H=1.0, offset=0.0)
        # Octave 0: 0.5 * 1; octave 1: 0.5 * 0.5 scaled by weight 0.5.
        assert fractal.hybrid_multifractal((1.0, 2.0, 3.0)) == pytest.approx(0.5 + 0.25 * 0.5)

    def test_batch(self, engine, random_points):
        values = engine.hybrid_multifractal(random_points[:100])
        assert values.shape == (100,)
        assert np.all(np.isfinite(values))


class TestNoiseEngineConfiguration:
    def test_defaults(self):
        default = NoiseEngine()
        assert default.seed == 2021
        assert default.octaves == 5
        assert default.H == pytest.approx(0.9)
        assert default.offset == pytest.approx(0.1)
        assert default.period == pytest.approx(20.0)
        assert default.table.size == 512

    def test_replace_rebuilds(self, engine):
        deeper = engine.replace(octaves=10)
        assert len(deeper.exponents) == 10
        assert len(engine.exponents) == 8
        reseeded = engine.replace(seed=99)
        assert not np.array_equal(reseeded.table.gradients, engine.table.gradients)
        assert reseeded.octaves == engine.octaves

    def test_exponents_are_read_only(self, engine):
        with pytest.raises(ValueError):
            engine.exponents[0] = 2.0

    @pytest.mark.parametrize("value", [0.0, -5.0, float('inf'), float('nan')])
    @pytest.mark.parametrize("key", ['period', 'plane_period'])
    def test_rejects_bad_period(self, key, value):
        with pytest.raises(InvalidConfiguration):
            NoiseEngine(config={key: value})

    @pytest.mark.parametrize("seed", [-1, 2.5, True])
    def test_rejects_bad_seed(self, seed):
        with pytest.raises(InvalidConfiguration):
            NoiseEngine(config={'seed': seed})


class TestSamplePlane:
    def test_shape_and_origin(self):
        e = NoiseEngine(config={'seed': 4, 'plane_period': 16.0})
        plane = e.sample_plane(width=20, height=10)
        assert plane.shape == (10, 20)
        # Every octave samples the origin, which is a lattice point.
        assert plane[0, 0] == 0.0

    def test_matches_point_evaluation(self):
        e = NoiseEngine(config={'seed': 4, 'plane_period': 16.0})
        plane = e.sample_plane(width=8, height=6, mode="hybrid")
        i, j = 5, 3
        assert plane[j, i] == pytest.approx(e.hybrid_multifractal((i / 16.0, j / 16.0, 0.0)))

    def test_unknown_mode(self):
        e = NoiseEngine(config={'seed': 4})
        with pytest.raises(InvalidConfiguration):
            e.sample_plane(width=4, height=4, mode="ridged")

    def test_rejects_empty_plane(self):
        e = NoiseEngine(config={'seed': 4})
        with pytest.raises(InvalidConfiguration):
            e.sample_plane(width=0, height=4)
