import numpy as np

from enum import Enum
from .closure import check_sibling_count
from .refine import refine_global, refine_red_blue
from .topology import as_coordinates, as_elements, as_segments, provide_geometric_data

# --- Entities ---
class BCTag(Enum):
    DIRICHLET = 1
    NEUMANN = 2




# --- The Mesh Class ---
class QuadMesh:
    '''
    A quadrilateral mesh together with its refinement state.

    The element array is ordered [standalone elements][blue sibling groups];
    `n_blue` counts the trailing rows that belong to groups of three. Every
    refinement returns a NEW QuadMesh carrying the sibling count for the next
    call, so several meshes can be refined side by side without sharing state.

    Attributes:
        coordinates (np.ndarray): (n_nodes, 2) node coordinates.
        elements (np.ndarray): (n_elements, 4) counter-clockwise vertex ids.
        boundaries (dict): BCTag -> (n, 2) boundary segments.
        n_blue (int): number of trailing elements organised as blue groups.
    '''

    def __init__(self, coordinates=None, elements=None, boundaries=None, n_blue=0):
        self.coordinates = np.array(as_coordinates([] if coordinates is None else coordinates))
        self.elements = np.array(as_elements([] if elements is None else elements))
        self.boundaries = {}
        for tag, segments in (boundaries or {}).items():
            self.boundaries[tag] = np.array(as_segments(segments))
        self.n_blue = self.n_elements - check_sibling_count(self.n_elements, n_blue)

    @property
    def n_nodes(self):
        return self.coordinates.shape[0]

    @property
    def n_elements(self):
        return self.elements.shape[0]

    @property
    def n_red(self):
        ''' Number of standalone elements (they come first). '''
        return self.n_elements - self.n_blue

    def add_node(self, x, y):
        """Appends a node and returns its id."""
        self.coordinates = np.vstack([self.coordinates, [float(x), float(y)]])
        return self.n_nodes - 1

    def add_cell(self, n1_id, n2_id, n3_id, n4_id):
        '''
        Adds a standalone quad and returns its index.

        Standalone elements sit in front of the blue groups, so the new
        quad is inserted there rather than appended.
        '''
        row = np.array([[n1_id, n2_id, n3_id, n4_id]], dtype=np.int64)
        if row.max() >= self.n_nodes:
            raise ValueError(f'Cell references node {row.max()} but the mesh has '
                             f'{self.n_nodes} nodes.')
        idx = self.n_red
        self.elements = np.insert(self.elements, idx, row, axis=0)
        return idx

    def tag_boundary_edge(self, n1_id, n2_id, tag):
        """Records the segment (n1, n2) under a boundary condition tag."""
        segment = np.array([[n1_id, n2_id]], dtype=np.int64)
        current = self.boundaries.get(tag, np.zeros((0, 2), dtype=np.int64))
        self.boundaries[tag] = np.vstack([current, segment])

    def topology(self):
        ''' Edge incidence of the mesh and of every boundary list. '''
        return provide_geometric_data(self.elements, *self.boundaries.values())

    def refine(self, marked):
        '''
        Red-blue refines the marked elements.
        Returns a NEW QuadMesh; this one is left untouched.
        '''
        tags = list(self.boundaries)
        result = refine_red_blue(self.coordinates, self.elements, marked,
                                 [self.boundaries[t] for t in tags], self.n_blue)
        return QuadMesh(result.coordinates, result.elements,
                        dict(zip(tags, result.boundaries)), result.n_blue)

    def refine_global(self):
        ''' Refines every element. Returns a NEW QuadMesh. '''
        return refine_global(self)

    def __repr__(self):
        return (f'QuadMesh(nodes={self.n_nodes}, elements={self.n_elements}, '
                f'blue={self.n_blue}, '
                f'boundaries={[getattr(t, "name", t) for t in self.boundaries]})')
