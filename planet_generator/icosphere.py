# planet_generator/icosphere.py

"""
================================================================================
GEODESIC SPHERE MESH
================================================================================
This module builds an icosphere: a regular icosahedron whose triangular faces
are recursively split into four, with every new vertex pushed back onto the
sphere surface.

Data Contract:
---------------
- Inputs (on initialization):
    - center: World-space position of the sphere center (3-vector).
    - radius: Sphere radius (> 0).
    - recursions: Number of subdivision passes (integer >= 0).
    - logger: Optional Python logging object for runtime messages.
- Outputs (read-only NumPy arrays):
    - vertices (V, 3), local_vertices (V, 3), vertex_normals (V, 3),
      uvs (V, 2), faces (F, 3), triangle_indices (3F,).
    - incidence: a (V, F) scipy.sparse CSR matrix, 1 where vertex v is a
      corner of face f.
- Side Effects: Logs messages using the provided logger.
- Invariants:
    - F == 20 * 4**k and V == 12 + 10 * (4**k - 1) after k subdivisions.
    - Every vertex lies at distance `radius` from `center`.
    - Every face references three distinct, existing vertices.
    - Identical inputs produce bit-identical vertex arrays.
================================================================================
"""

import enum
import logging
import math

import numpy as np
from scipy import sparse

from .errors import DegenerateGeometry, InvalidConfiguration

module_logger = logging.getLogger(__name__)

GOLDEN_RATIO = (1.0 + math.sqrt(5.0)) / 2.0

# Face table of the base icosahedron. The order is fixed: vertex indices and
# winding determine midpoint numbering and the UV seam layout.
BASE_FACES = (
    # 5 faces around vertex 0
    (0, 11, 5), (0, 5, 1), (0, 1, 7), (0, 7, 10), (0, 10, 11),
    # 5 adjacent faces
    (1, 5, 9), (5, 11, 4), (11, 10, 2), (10, 7, 6), (7, 1, 8),
    # 5 faces around vertex 3
    (3, 9, 4), (3, 4, 2), (3, 2, 6), (3, 6, 8), (3, 8, 9),
    # 5 adjacent faces
    (4, 9, 5), (2, 4, 11), (6, 2, 10), (8, 6, 7), (9, 8, 1),
)


class MeshStage(enum.IntEnum):
    UNINITIALIZED = 0
    BASE_ICOSAHEDRON = 1
    SUBDIVIDED = 2
    TRANSLATED = 3
    UV_MAPPED = 4


class MidpointCache:
    """Maps an undirected edge (a, b) to the index of its midpoint vertex."""

    def __init__(self):
        self._indices = {}

    @staticmethod
    def key(a: int, b: int) -> tuple:
        return (a, b) if a < b else (b, a)

    def get(self, a: int, b: int):
        return self._indices.get(self.key(a, b))

    def put(self, a: int, b: int, index: int):
        self._indices[self.key(a, b)] = index

    def __len__(self):
        return len(self._indices)

    def __contains__(self, edge) -> bool:
        return self.key(*edge) in self._indices


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class Icosphere:
    """
    A geodesic sphere. All build stages run inside the constructor, in
    order; afterwards the object only exposes read-only views.
    """

    def __init__(self, center=(0.0, 0.0, 0.0), radius: float = 1.0, recursions: int = 0,
                 logger: logging.Logger = None):
        self.logger = logger or module_logger

        # --- Validate before building anything ---
        center = np.asarray(center, dtype=np.float64)
        if center.shape != (3,) or not np.all(np.isfinite(center)):
            raise InvalidConfiguration(f"center must be a finite 3-vector, got {center!r}")
        if not (math.isfinite(radius) and radius > 0):
            raise InvalidConfiguration(f"radius must be finite and positive, got {radius!r}")
        if isinstance(recursions, bool) or int(recursions) != recursions or recursions < 0:
            raise InvalidConfiguration(f"recursions must be a non-negative integer, got {recursions!r}")

        self._center = _read_only(center)
        self._radius = float(radius)
        self.recursions = int(recursions)

        self.stage = MeshStage.UNINITIALIZED
        self.midpoints = MidpointCache()
        self._points = []
        self._face_list = []

        self._build_base()
        self._subdivide()
        self._translate()
        self._calc_uvs()
        self._build_incidence()

        self.logger.info(
            f"Icosphere built: radius={self._radius}, recursions={self.recursions}, "
            f"{self.vertex_count} vertices, {self.face_count} faces"
        )

    # --- Stage machine ---
    def _advance(self, expected: MeshStage, new_stage: MeshStage):
        if self.stage != expected:
            raise DegenerateGeometry(
                f"Cannot enter stage {new_stage.name} from {self.stage.name} (expected {expected.name})"
            )
        self.stage = new_stage

    def _build_base(self):
        self._advance(MeshStage.UNINITIALIZED, MeshStage.BASE_ICOSAHEDRON)

        # Scaling (+-1, +-phi, 0) by this factor puts every corner at `radius`.
        s = self._radius / (2 * math.sin(2 * math.pi / 5))
        g = s * GOLDEN_RATIO

        self._points = [
            (-s, g, 0.0), (s, g, 0.0), (-s, -g, 0.0), (s, -g, 0.0),
            (0.0, -s, g), (0.0, s, g), (0.0, -s, -g), (0.0, s, -g),
            (g, 0.0, -s), (g, 0.0, s), (-g, 0.0, -s), (-g, 0.0, s),
        ]
        self._face_list = list(BASE_FACES)

    def _midpoint_index(self, a: int, b: int) -> int:
        cached = self.midpoints.get(a, b)
        if cached is not None:
            return cached

        pa = self._points[a]
        pb = self._points[b]
        mx = (pa[0] + pb[0]) * 0.5
        my = (pa[1] + pb[1]) * 0.5
        mz = (pa[2] + pb[2]) * 0.5
        scale = self._radius / math.sqrt(mx * mx + my * my + mz * mz)

        index = len(self._points)
        self._points.append((mx * scale, my * scale, mz * scale))
        self.midpoints.put(a, b, index)
        return index

    def _subdivide(self):
        self._advance(MeshStage.BASE_ICOSAHEDRON, MeshStage.SUBDIVIDED)

        for level in range(self.recursions):
            new_faces = []
            for a, b, c in self._face_list:
                ab = self._midpoint_index(a, b)
                bc = self._midpoint_index(b, c)
                ca = self._midpoint_index(c, a)

                new_faces.append((a, ab, ca))
                new_faces.append((b, bc, ab))
                new_faces.append((c, ca, bc))
                new_faces.append((ab, bc, ca))

            self._face_list = new_faces
            self.logger.debug(
                f"Subdivision pass {level + 1}/{self.recursions}: "
                f"{len(self._points)} vertices, {len(self._face_list)} faces, "
                f"{len(self.midpoints)} cached midpoints"
            )

        self._local = _read_only(np.array(self._points, dtype=np.float64))
        self._faces = _read_only(np.array(self._face_list, dtype=np.int64).reshape(-1, 3))
        self._check_faces()

    def _check_faces(self):
        """Every face must reference three distinct, existing vertices."""
        faces = self._faces
        if faces.size and (faces.min() < 0 or faces.max() >= len(self._local)):
            raise DegenerateGeometry("Face references a vertex that does not exist")

        repeated = (
            (faces[:, 0] == faces[:, 1]) |
            (faces[:, 1] == faces[:, 2]) |
            (faces[:, 2] == faces[:, 0])
        )
        if np.any(repeated):
            bad = np.flatnonzero(repeated)
            raise DegenerateGeometry(f"{bad.size} degenerate face(s), first at index {bad[0]}")

    def _translate(self):
        self._advance(MeshStage.SUBDIVIDED, MeshStage.TRANSLATED)
        self._vertices = _read_only(self._local + self._center)

    def _calc_uvs(self):
        """Equirectangular mapping of each vertex direction, seen from the center."""
        self._advance(MeshStage.TRANSLATED, MeshStage.UV_MAPPED)

        directions = self._local / np.linalg.norm(self._local, axis=1)[:, np.newaxis]
        self._normals = _read_only(directions)

        x = directions[:, 0]
        y = np.clip(directions[:, 1], -1.0, 1.0)
        z = directions[:, 2]

        u = 0.5 - np.arctan2(z, x) / (2 * np.pi)
        v = 0.5 - np.arcsin(y) / np.pi
        self._uvs = _read_only(np.column_stack((u, v)))

    def _build_incidence(self):
        face_count = len(self._faces)
        rows = self._faces.ravel()
        cols = np.repeat(np.arange(face_count), 3)
        data = np.ones(rows.size, dtype=np.float64)

        incidence = sparse.csr_matrix((data, (rows, cols)), shape=(self.vertex_count, face_count))
        incidence.sort_indices()
        self._incidence = incidence
        self.logger.debug(f"Vertex/face incidence built with {incidence.nnz} entries.")

    # --- Accessors ---
    @property
    def center(self) -> np.ndarray:
        return self._center

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def vertices(self) -> np.ndarray:
        """World-space vertex positions."""
        return self._vertices

    @property
    def local_vertices(self) -> np.ndarray:
        """Vertex positions relative to the center."""
        return self._local

    @property
    def faces(self) -> np.ndarray:
        return self._faces

    @property
    def triangle_indices(self) -> np.ndarray:
        return self._faces.ravel()

    @property
    def vertex_normals(self) -> np.ndarray:
        """Outward unit normals, normalize(vertex - center)."""
        return self._normals

    @property
    def uvs(self) -> np.ndarray:
        return self._uvs

    @property
    def incidence(self) -> sparse.csr_matrix:
        return self._incidence

    @property
    def vertex_count(self) -> int:
        return len(self._local)

    @property
    def face_count(self) -> int:
        return len(self._faces)

    def incident_faces(self, vertex: int) -> np.ndarray:
        """Indices of every face that has `vertex` as a corner."""
        start, end = self._incidence.indptr[vertex], self._incidence.indptr[vertex + 1]
        return self._incidence.indices[start:end]

    def seam_faces(self) -> np.ndarray:
        """
        Faces that straddle the u = 0/1 seam.

        The parameterization maps outward-wound triangles to clockwise UV
        triangles, so a counter-clockwise UV triangle has wrapped around.
        """
        uv_a = self._uvs[self._faces[:, 0]]
        uv_b = self._uvs[self._faces[:, 1]]
        uv_c = self._uvs[self._faces[:, 2]]
        ab = uv_b - uv_a
        ac = uv_c - uv_a
        cross_z = ab[:, 0] * ac[:, 1] - ab[:, 1] * ac[:, 0]
        return np.flatnonzero(cross_z > 0)
