"""Tests for the QuadMesh session object and repeated refinement."""

import numpy as np
import pytest

from snapquad.errors import InvalidMarking, InvalidSiblingCount, InvalidTopology
from snapquad.mesh import BCTag, QuadMesh
from snapquad.quality import is_conforming
from snapquad.transfinite import rectangle


def _check_groups(mesh):
    """Every trailing triple must have the blue sibling layout."""
    groups = mesh.elements[mesh.n_red :].reshape(-1, 3, 4)
    for g1, g2, g3 in groups:
        assert g3[0] == g2[1]  # M1
        assert g1[3] == g3[2]  # M2
        assert g1[2] == g2[2] == g3[3]  # centre
        assert g1[1] == g2[3]  # P4


class TestConstruction:
    def test_empty_mesh(self):
        mesh = QuadMesh()
        assert mesh.n_nodes == 0
        assert mesh.n_elements == 0
        assert mesh.n_blue == 0

    @pytest.mark.parametrize("n_blue", [1, 3, -3])
    def test_invalid_sibling_count(self, two_quads, n_blue):
        coordinates, elements, _ = two_quads
        with pytest.raises(InvalidSiblingCount):
            QuadMesh(coordinates, elements, n_blue=n_blue)

    def test_non_integer_sibling_count(self, two_quads_mesh):
        mesh = two_quads_mesh.refine([0])
        with pytest.raises(InvalidSiblingCount):
            QuadMesh(mesh.coordinates, mesh.elements, n_blue=3.0)

    def test_sibling_count_from_numpy_int(self, two_quads_mesh):
        mesh = two_quads_mesh.refine([0])
        same = QuadMesh(mesh.coordinates, mesh.elements, n_blue=np.int64(3))
        assert same.n_blue == 3
        assert isinstance(same.n_blue, int)

    @pytest.mark.parametrize("shape", [(6, 3), (12,), (2, 3, 2)])
    def test_coordinates_must_be_pairs(self, shape):
        coordinates = np.arange(np.prod(shape), dtype=float).reshape(shape)
        with pytest.raises(InvalidTopology):
            QuadMesh(coordinates, [[0, 1, 2, 3]])

    def test_repr(self, two_quads_mesh):
        assert repr(two_quads_mesh) == (
            "QuadMesh(nodes=6, elements=2, blue=0, boundaries=['DIRICHLET'])"
        )


class TestBuilder:
    def test_add_node_and_cell(self):
        mesh = QuadMesh()
        ids = [mesh.add_node(x, y) for x, y in [(0, 0), (1, 0), (1, 1), (0, 1)]]
        assert ids == [0, 1, 2, 3]
        assert mesh.add_cell(*ids) == 0
        assert mesh.elements.tolist() == [[0, 1, 2, 3]]

    def test_cell_inserted_before_groups(self, two_quads_mesh):
        mesh = two_quads_mesh.refine([0])
        group = mesh.elements[mesh.n_red :].copy()

        a = mesh.add_node(3.0, 0.0)
        b = mesh.add_node(3.0, 1.0)
        idx = mesh.add_cell(2, a, b, 3)

        assert idx == 4
        assert mesh.elements[idx].tolist() == [2, a, b, 3]
        assert mesh.n_blue == 3
        assert np.array_equal(mesh.elements[mesh.n_red :], group)

    def test_unknown_node_rejected(self, two_quads_mesh):
        with pytest.raises(ValueError):
            two_quads_mesh.add_cell(0, 1, 2, 42)

    def test_tag_boundary_edge(self, two_quads_mesh):
        two_quads_mesh.tag_boundary_edge(1, 2, BCTag.NEUMANN)
        two_quads_mesh.tag_boundary_edge(2, 3, BCTag.NEUMANN)
        assert two_quads_mesh.boundaries[BCTag.NEUMANN].tolist() == [[1, 2], [2, 3]]
        topo = two_quads_mesh.topology()
        assert len(topo.boundary2edges) == 2

    def test_built_mesh_refines(self, two_quads_mesh, areas):
        mesh = two_quads_mesh.refine([0])
        a = mesh.add_node(3.0, 0.0)
        b = mesh.add_node(3.0, 1.0)
        idx = mesh.add_cell(2, a, b, 3)
        mesh.tag_boundary_edge(a, b, BCTag.NEUMANN)

        refined = mesh.refine([idx])
        assert is_conforming(refined.coordinates, refined.elements)
        assert np.isclose(areas(refined.coordinates, refined.elements).sum(), 3.0)
        ### (a, b) was split in two
        assert len(refined.boundaries[BCTag.NEUMANN]) == 2


class TestSession:
    def test_refine_returns_new_mesh(self, two_quads_mesh):
        coordinates = two_quads_mesh.coordinates.copy()
        elements = two_quads_mesh.elements.copy()

        refined = two_quads_mesh.refine([0])

        assert refined is not two_quads_mesh
        assert np.array_equal(two_quads_mesh.coordinates, coordinates)
        assert np.array_equal(two_quads_mesh.elements, elements)
        assert two_quads_mesh.n_blue == 0
        assert refined.n_blue == 3

    def test_failed_refine_leaves_mesh_alone(self, two_quads_mesh):
        mesh = two_quads_mesh.refine([0])
        before = mesh.elements.copy()
        with pytest.raises(InvalidMarking):
            mesh.refine([99])
        assert np.array_equal(mesh.elements, before)
        assert mesh.n_blue == 3

    def test_empty_marking_keeps_groups(self, two_quads_mesh):
        mesh = two_quads_mesh.refine([0])
        same = mesh.refine([])
        assert np.array_equal(same.elements, mesh.elements)
        assert same.n_blue == mesh.n_blue

    def test_independent_sessions(self, two_quads_mesh, l_shape_mesh):
        a = two_quads_mesh.refine([0])
        b = l_shape_mesh.refine([2])
        a2 = a.refine([5])
        ### Refining one session does not affect the other
        assert b.n_blue == l_shape_mesh.refine([2]).n_blue
        assert a2.n_blue == 0
        assert a.n_blue == 3

    def test_boundary_tags_preserved(self):
        mesh = rectangle(1.0, 1.0, 2, 2, tags={"top": BCTag.NEUMANN})
        refined = mesh.refine([0, 3])
        assert set(refined.boundaries) == {BCTag.DIRICHLET, BCTag.NEUMANN}
        ### Only the top segment of element 3 was halved
        assert len(refined.boundaries[BCTag.NEUMANN]) == 3

    def test_refine_global(self, two_quads_mesh, areas):
        mesh = two_quads_mesh.refine([0]).refine_global()
        assert mesh.n_blue == 0
        assert mesh.n_elements == 4 * 4 + 4
        assert np.isclose(areas(mesh.coordinates, mesh.elements).sum(), 2.0)


class TestRepeatedRefinement:
    def test_random_markings_stay_conforming(self, areas):
        rng = np.random.default_rng(0)
        mesh = rectangle(1.0, 1.0, 3, 3)

        for _ in range(5):
            n_marked = max(1, mesh.n_elements // 5)
            marked = rng.choice(mesh.n_elements, size=n_marked, replace=False)
            mesh = mesh.refine(marked)

            area = areas(mesh.coordinates, mesh.elements)
            assert np.all(area > 0)
            assert np.isclose(area.sum(), 1.0)
            assert mesh.n_blue % 3 == 0
            assert is_conforming(mesh.coordinates, mesh.elements)
            _check_groups(mesh)

    def test_boundary_covers_perimeter(self):
        mesh = rectangle(1.0, 1.0, 2, 2).refine([0]).refine([1, 2])
        segments = mesh.boundaries[BCTag.DIRICHLET]
        lengths = np.linalg.norm(
            mesh.coordinates[segments[:, 1]] - mesh.coordinates[segments[:, 0]], axis=1
        )
        assert np.isclose(lengths.sum(), 4.0)
