"""Shared fixtures for the snapquad test suite.

Meshes are small and hand-numbered so tests can check exact node ids.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from snapquad.mesh import BCTag, QuadMesh

### Hand-built Meshes ###


@pytest.fixture
def unit_square():
    """Single counter-clockwise unit quad with its four boundary segments."""
    coordinates = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    elements = np.array([[0, 1, 2, 3]])
    boundary = np.array([[0, 1], [1, 2], [2, 3], [3, 0]])
    return coordinates, elements, boundary


@pytest.fixture
def two_quads():
    """Two unit quads side by side sharing the edge (1, 4).

    5 --- 4 --- 3
    |  0  |  1  |
    0 --- 1 --- 2
    """
    coordinates = np.array(
        [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [2.0, 1.0], [1.0, 1.0], [0.0, 1.0]]
    )
    elements = np.array([[0, 1, 4, 5], [1, 2, 3, 4]])
    boundary = np.array([[0, 1], [1, 2], [2, 3], [3, 4], [4, 5], [5, 0]])
    return coordinates, elements, boundary


@pytest.fixture
def l_shape():
    """Three unit quads forming an L: element 2 sits on top of element 1.

          6 --- 7
          |  2  |
    5 --- 4 --- 3
    |  0  |  1  |
    0 --- 1 --- 2
    """
    coordinates = np.array(
        [
            [0.0, 0.0],
            [1.0, 0.0],
            [2.0, 0.0],
            [2.0, 1.0],
            [1.0, 1.0],
            [0.0, 1.0],
            [1.0, 2.0],
            [2.0, 2.0],
        ]
    )
    elements = np.array([[0, 1, 4, 5], [1, 2, 3, 4], [4, 3, 7, 6]])
    boundary = np.array(
        [[0, 1], [1, 2], [2, 3], [3, 7], [7, 6], [6, 4], [4, 5], [5, 0]]
    )
    return coordinates, elements, boundary


@pytest.fixture
def two_quads_mesh(two_quads):
    coordinates, elements, boundary = two_quads
    return QuadMesh(coordinates, elements, {BCTag.DIRICHLET: boundary})


@pytest.fixture
def l_shape_mesh(l_shape):
    coordinates, elements, boundary = l_shape
    return QuadMesh(coordinates, elements, {BCTag.DIRICHLET: boundary})


### Helpers ###


def signed_areas(coordinates, elements):
    """Shoelace area of every quad."""
    pts = np.asarray(coordinates)[np.asarray(elements)]
    nxt = np.roll(pts, -1, axis=1)
    return 0.5 * np.sum(pts[..., 0] * nxt[..., 1] - nxt[..., 0] * pts[..., 1], axis=1)


@pytest.fixture
def areas():
    return signed_areas
