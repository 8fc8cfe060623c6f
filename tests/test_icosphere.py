"""Tests for the geodesic sphere builder."""

from collections import Counter

import numpy as np
import pytest

from planet_generator import icosphere as icosphere_module
from planet_generator.errors import DegenerateGeometry, InvalidConfiguration
from planet_generator.icosphere import BASE_FACES, Icosphere, MeshStage, MidpointCache

CENTER = (3.0, -2.0, 5.0)


@pytest.fixture(scope="module")
def sphere():
    return Icosphere(center=CENTER, radius=10.0, recursions=2)


def edge_counts(faces):
    counts = Counter()
    for a, b, c in faces.tolist():
        for u, v in ((a, b), (b, c), (c, a)):
            counts[(min(u, v), max(u, v))] += 1
    return counts


class TestCounts:
    @pytest.mark.parametrize("k", [0, 1, 2, 3])
    def test_face_and_vertex_counts(self, k):
        mesh = Icosphere(radius=1.0, recursions=k)
        assert mesh.face_count == 20 * 4 ** k
        assert mesh.vertex_count == 12 + 10 * (4 ** k - 1)

    def test_triangle_indices(self, sphere):
        indices = sphere.triangle_indices
        assert indices.shape == (3 * sphere.face_count,)
        assert np.array_equal(indices, sphere.faces.ravel())
        assert indices.min() >= 0
        assert indices.max() < sphere.vertex_count


class TestGeometry:
    def test_vertices_on_sphere(self, sphere):
        distances = np.linalg.norm(sphere.vertices - np.array(CENTER), axis=1)
        np.testing.assert_allclose(distances, 10.0, rtol=1e-12)

    def test_translation_only(self, sphere):
        np.testing.assert_allclose(sphere.vertices - sphere.center, sphere.local_vertices, atol=1e-12)
        np.testing.assert_allclose(np.linalg.norm(sphere.local_vertices, axis=1), 10.0, rtol=1e-12)

    def test_vertex_normals_point_outward(self, sphere):
        normals = sphere.vertex_normals
        np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0, atol=1e-12)
        np.testing.assert_allclose(normals * 10.0, sphere.local_vertices, atol=1e-9)

    def test_base_faces_are_literal(self):
        mesh = Icosphere(radius=2.0, recursions=0)
        assert [tuple(f) for f in mesh.faces.tolist()] == list(BASE_FACES)

    def test_base_faces_wound_outward(self):
        mesh = Icosphere(radius=1.0, recursions=0)
        v = mesh.vertices[mesh.faces]
        normals = np.cross(v[:, 1] - v[:, 0], v[:, 2] - v[:, 0])
        centroids = v.mean(axis=1)
        assert np.all(np.einsum('ij,ij->i', normals, centroids) > 0)

    def test_subdivision_layout(self):
        mesh = Icosphere(radius=1.0, recursions=1)
        # Base face (0, 11, 5) creates midpoints 12 (0-11), 13 (11-5), 14 (5-0).
        assert mesh.faces[:4].tolist() == [[0, 12, 14], [11, 13, 12], [5, 14, 13], [12, 13, 14]]
        expected = (mesh.vertices[0] + mesh.vertices[11]) / 2
        expected /= np.linalg.norm(expected)
        np.testing.assert_allclose(mesh.vertices[12], expected, atol=1e-12)


class TestDeduplication:
    def test_every_edge_shared_by_two_faces(self, sphere):
        counts = edge_counts(sphere.faces)
        assert set(counts.values()) == {2}

    def test_midpoints_created_once_per_edge(self):
        mesh = Icosphere(radius=1.0, recursions=1)
        # The icosahedron has 30 edges.
        assert len(mesh.midpoints) == 30
        assert mesh.vertex_count == 12 + 30

    def test_no_duplicate_positions(self, sphere):
        rounded = np.round(sphere.vertices, 9)
        assert len(np.unique(rounded, axis=0)) == sphere.vertex_count

    def test_faces_have_distinct_corners(self, sphere):
        f = sphere.faces
        assert np.all(f[:, 0] != f[:, 1])
        assert np.all(f[:, 1] != f[:, 2])
        assert np.all(f[:, 2] != f[:, 0])


class TestMidpointCache:
    def test_key_is_unordered(self):
        cache = MidpointCache()
        cache.put(3, 7, 42)
        assert cache.get(7, 3) == 42
        assert (7, 3) in cache
        assert (3, 7) in cache
        assert len(cache) == 1

    def test_missing_edge(self):
        cache = MidpointCache()
        assert cache.get(1, 2) is None
        assert (1, 2) not in cache

    def test_large_indices(self):
        cache = MidpointCache()
        cache.put(2 ** 40, 2 ** 40 + 1, 1)
        cache.put(2 ** 40 + 1, 2 ** 41, 2)
        assert cache.get(2 ** 40 + 1, 2 ** 40) == 1
        assert cache.get(2 ** 41, 2 ** 40 + 1) == 2


class TestDeterminism:
    def test_bit_identical_rebuild(self):
        a = Icosphere(center=CENTER, radius=7.5, recursions=3)
        b = Icosphere(center=CENTER, radius=7.5, recursions=3)
        assert np.array_equal(a.vertices, b.vertices)
        assert np.array_equal(a.faces, b.faces)
        assert np.array_equal(a.uvs, b.uvs)


class TestUVs:
    def test_in_unit_square(self, sphere):
        uvs = sphere.uvs
        assert uvs.shape == (sphere.vertex_count, 2)
        assert np.all((uvs >= 0.0) & (uvs <= 1.0))

    def test_poles(self):
        mesh = Icosphere(radius=1.0, recursions=1)
        directions = mesh.vertex_normals
        north = np.argmax(directions[:, 1])
        south = np.argmin(directions[:, 1])
        assert mesh.uvs[north, 1] == pytest.approx(0.0)
        assert mesh.uvs[south, 1] == pytest.approx(1.0)

    def test_seam_faces_wrap_in_u(self, sphere):
        seam = sphere.seam_faces()
        assert seam.size > 0
        assert seam.size < sphere.face_count // 4
        u = sphere.uvs[:, 0][sphere.faces[seam]]
        assert np.all(u.max(axis=1) - u.min(axis=1) > 0.5)


class TestIncidence:
    def test_base_vertices_touch_five_faces(self):
        mesh = Icosphere(radius=1.0, recursions=0)
        for v in range(mesh.vertex_count):
            assert len(mesh.incident_faces(v)) == 5

    def test_matches_face_table(self, sphere):
        for v in (0, 5, 11, 40, sphere.vertex_count - 1):
            expected = sorted(np.flatnonzero(np.any(sphere.faces == v, axis=1)).tolist())
            assert sorted(sphere.incident_faces(v).tolist()) == expected

    def test_degrees(self, sphere):
        degrees = np.asarray(sphere.incidence.sum(axis=1)).ravel()
        assert set(degrees.tolist()) == {5.0, 6.0}
        assert degrees.sum() == 3 * sphere.face_count


class TestStages:
    def test_finished_stage(self, sphere):
        assert sphere.stage == MeshStage.UV_MAPPED

    def test_stages_cannot_rerun(self):
        mesh = Icosphere(radius=1.0, recursions=0)
        with pytest.raises(DegenerateGeometry):
            mesh._translate()
        with pytest.raises(DegenerateGeometry):
            mesh._subdivide()

    def test_accessors_are_read_only(self, sphere):
        with pytest.raises(ValueError):
            sphere.vertices[0, 0] = 0.0
        with pytest.raises(ValueError):
            sphere.faces[0, 0] = 1
        with pytest.raises(ValueError):
            sphere.uvs[0, 0] = 0.5


class TestValidation:
    @pytest.mark.parametrize("radius", [0.0, -1.0, float("inf"), float("nan")])
    def test_bad_radius(self, radius):
        with pytest.raises(InvalidConfiguration):
            Icosphere(radius=radius, recursions=0)

    @pytest.mark.parametrize("recursions", [-1, 1.5, True])
    def test_bad_recursions(self, recursions):
        with pytest.raises(InvalidConfiguration):
            Icosphere(radius=1.0, recursions=recursions)

    def test_bad_center(self):
        with pytest.raises(InvalidConfiguration):
            Icosphere(center=(0.0, 0.0), radius=1.0)

    def test_repeated_corner_is_rejected(self, monkeypatch):
        faces = list(BASE_FACES)
        a, b, _ = faces[0]
        faces[0] = (a, b, a)
        monkeypatch.setattr(icosphere_module, "BASE_FACES", tuple(faces))
        with pytest.raises(DegenerateGeometry):
            Icosphere(radius=1.0, recursions=0)

    def test_missing_vertex_is_rejected(self, monkeypatch):
        faces = list(BASE_FACES)
        faces[0] = (0, 1, 12)
        monkeypatch.setattr(icosphere_module, "BASE_FACES", tuple(faces))
        with pytest.raises(DegenerateGeometry):
            Icosphere(radius=1.0, recursions=0)
