''' refine.py
    ---------
    Red-blue refinement of quadrilateral meshes.

    One call bisects every marked edge, adds centre and interior nodes, and
    rebuilds each element (or group of blue siblings) from a fixed template.
    The result is conforming: no element ends with a hanging node.

    The new element list has two blocks. Children in the first ("red") block
    are standalone in the next call; the second ("blue") block holds complete
    groups of three siblings, and its length is the sibling count to pass to
    the next call.
'''
import logging
from collections import namedtuple

import numpy as np

from .closure import check_sibling_count, mark_for_refinement
from .errors import InvalidTopology
from .patterns import BlueClass, RedClass
from .topology import as_coordinates, as_elements, as_segments, provide_geometric_data

logger = logging.getLogger(__name__)


RefinementResult = namedtuple('RefinementResult',
                              ['coordinates', 'elements', 'boundaries', 'n_blue'])

# Bilinear weights of the macro-quad corners P1..P4 for the interior nodes
SOUTH_WEIGHTS = np.array([9.0, 3.0, 1.0, 3.0]) / 16.0
SOUTHEAST_WEIGHTS = np.array([3.0, 9.0, 3.0, 1.0]) / 16.0
EAST_WEIGHTS = np.array([1.0, 3.0, 9.0, 3.0]) / 16.0

# --- Local Node Table ---
# Every element or group is described by 18 slots. For a standalone
# element only the first nine are used.
P1, P2, P3, P4 = 0, 1, 2, 3     # corners (macro-quad corners for groups)
C = 4                           # centre
M1, M2, M3, M4 = 5, 6, 7, 8     # midpoints of sides 1..4
M1_L, M1_R = 9, 10              # halves of side 1: P1-M1 and M1-P2
M2_L, C_M2 = 11, 12             # P2-M2 (half of side 2) and M2-C
C_M1, M2_R = 13, 14             # midpoints of C-M1 and M2-P3
X_S, X_SE, X_E = 15, 16, 17     # interior nodes of the quadrants at P1, P2, P3
N_SLOTS = 18

Template = namedtuple('Template', ['red', 'blue'])


def _tpl(*children):
    return np.array(children, dtype=np.int64).reshape(-1, 4)


_RED_SPLIT = _tpl((P1, M1, C, M4), (P2, M2, C, M1), (P3, M3, C, M2), (P4, M4, C, M3))

RED_TEMPLATES = {
    RedClass.NONE: Template(_tpl((P1, P2, P3, P4)), _tpl()),
    RedClass.RED: Template(_RED_SPLIT, _tpl()),
    RedClass.BLUE_RIGHT: Template(_tpl(), _tpl((P3, P4, C, M2), (P1, M1, C, P4),
                                               (M1, P2, M2, C))),
    RedClass.BLUE_LEFT: Template(_tpl(), _tpl((P1, P2, C, M4), (P3, M3, C, P2),
                                              (M3, P4, M4, C))),
}

BLUE_TEMPLATES = {
    BlueClass.BLUE: Template(_tpl(), _tpl((P3, P4, C, M2), (P1, M1, C, P4),
                                          (M1, P2, M2, C))),
    BlueClass.RED: Template(_RED_SPLIT, _tpl()),
    BlueClass.EAST: Template(
        _tpl((P1, M1, C, M4), (P4, M4, C, M3)),
        _tpl((C, M1, X_SE, C_M2), (P2, M2_L, X_SE, M1), (M2_L, M2, C_M2, X_SE),
             (P3, M3, X_E, M2_R), (C, C_M2, X_E, M3), (C_M2, M2, M2_R, X_E))),
    BlueClass.SOUTH: Template(
        _tpl((P3, M3, C, M2), (P4, M4, C, M3)),
        _tpl((C, M4, X_S, C_M1), (P1, M1_L, X_S, M4), (M1_L, M1, C_M1, X_S),
             (P2, M2, X_SE, M1_R), (C, C_M1, X_SE, M2), (C_M1, M1, M1_R, X_SE))),
    BlueClass.SOUTHEAST: Template(
        _tpl((M1, M1_R, X_SE, C_M1), (P2, M2_L, X_SE, M1_R), (M2, C_M2, X_SE, M2_L),
             (C, C_M1, X_SE, C_M2), (P4, M4, C, M3)),
        _tpl((C, M4, X_S, C_M1), (P1, M1_L, X_S, M4), (M1_L, M1, C_M1, X_S),
             (P3, M3, X_E, M2_R), (C, C_M2, X_E, M3), (C_M2, M2, M2_R, X_E))),
}

for _table in (RED_TEMPLATES, BLUE_TEMPLATES):
    for _template in _table.values():
        _template.red.setflags(write=False)
        _template.blue.setflags(write=False)


def _counts(classes, templates):
    ''' Children per item in the red and the blue block. '''
    red = np.zeros(len(classes), dtype=np.int64)
    blue = np.zeros(len(classes), dtype=np.int64)
    for cls, template in templates.items():
        hit = classes == cls
        red[hit] = len(template.red)
        blue[hit] = len(template.blue)
    return red, blue


def _write_children(out, local, classes, templates, red_start, blue_start):
    ''' Expands every item into its template rows at the given offsets. '''
    for cls, template in templates.items():
        items = np.flatnonzero(classes == cls)
        if len(items) == 0:
            continue
        for tpl, start in ((template.red, red_start), (template.blue, blue_start)):
            if len(tpl) == 0:
                continue
            rows = start[items][:, None] + np.arange(len(tpl))
            out[rows] = local[items][:, tpl]


def build_local_nodes(elements, element2edges, edge2new, n_red):
    '''
    Local node table of every standalone element followed by every group.

    Slots of nodes that do not exist are -1.
    '''
    n_groups = (elements.shape[0] - n_red) // 3
    local = np.full((n_red + n_groups, N_SLOTS), -1, dtype=np.int64)

    # --- Standalone Elements ---
    local[:n_red, P1:P4 + 1] = elements[:n_red]
    local[:n_red, M1:M4 + 1] = edge2new[element2edges[:n_red]]

    # --- Groups: Rebuild the Macro-Quad From Its Three Siblings ---
    g1, g2, g3 = (elements[n_red + k::3] for k in range(3))
    e1, e2, e3 = (element2edges[n_red + k::3] for k in range(3))
    blue = local[n_red:]
    blue[:, P1] = g2[:, 0]
    blue[:, P2] = g3[:, 1]
    blue[:, P3] = g1[:, 0]
    blue[:, P4] = g1[:, 1]
    blue[:, C] = g3[:, 3]
    blue[:, M1] = g2[:, 1]
    blue[:, M2] = g1[:, 3]
    blue[:, M3] = edge2new[e1[:, 0]]
    blue[:, M4] = edge2new[e2[:, 3]]
    blue[:, M1_L] = edge2new[e2[:, 0]]
    blue[:, M1_R:C_M1 + 1] = edge2new[e3]
    blue[:, M2_R] = edge2new[e1[:, 3]]
    return local


def refine_boundary(boundary, boundary2edges, edge2new):
    '''
    Splits the boundary segments that lie on bisected edges.

    Returns the untouched segments in their original order, followed by the
    first halves [a, m] and then the second halves [m, b].
    '''
    boundary = as_segments(boundary)
    new = edge2new[boundary2edges]
    split = new >= 0
    return np.vstack([boundary[~split],
                      np.column_stack([boundary[split, 0], new[split]]),
                      np.column_stack([new[split], boundary[split, 1]])]).astype(np.int64)


def refine_red_blue(coordinates, elements, marked, boundaries=(), n_blue=0):
    '''
    Refines the marked elements and closes the mesh to a conforming one.

    The inputs are never modified; all outputs are fresh arrays.

    Args:
        coordinates: (n_points, 2) node coordinates.
        elements: (n_elements, 4) counter-clockwise vertex ids. The last
            n_blue rows are groups of three blue siblings.
        marked: indices of the elements to refine.
        boundaries: sequence of (n, 2) boundary segment lists.
        n_blue (int): sibling count returned by the previous call.

    Returns:
        RefinementResult(coordinates, elements, boundaries, n_blue)

    Raises:
        InvalidMarking, InvalidTopology, InvalidSiblingCount
    '''
    coordinates = as_coordinates(coordinates)
    boundaries = [as_segments(b) for b in boundaries]

    topo = provide_geometric_data(elements, *boundaries)
    elements = as_elements(elements)
    if elements.size and elements.max() >= coordinates.shape[0]:
        raise InvalidTopology(f'Element vertex id {elements.max()} exceeds the '
                              f'{coordinates.shape[0]} given coordinates.')

    n_points = coordinates.shape[0]
    n_elements = elements.shape[0]
    n_red = check_sibling_count(n_elements, n_blue)
    n_blue = n_elements - n_red

    # --- 1. Marking and Closure ---
    marking = mark_for_refinement(topo.element2edges, len(topo.edge2nodes), marked, n_blue)
    red_class, blue_class = marking.red_class, marking.blue_class

    # --- 2. Node Numbering ---
    # Midpoints first (edge order), then element centres, then group interiors
    marked_edges = np.flatnonzero(marking.edge_marks)
    edge2new = np.full(len(topo.edge2nodes), -1, dtype=np.int64)
    edge2new[marked_edges] = n_points + np.arange(len(marked_edges))

    centred = np.concatenate([np.flatnonzero(red_class == cls) for cls in
                              (RedClass.RED, RedClass.BLUE_RIGHT, RedClass.BLUE_LEFT)])
    south = np.flatnonzero(np.isin(blue_class, [BlueClass.SOUTH, BlueClass.SOUTHEAST]))
    southeast = np.flatnonzero(np.isin(blue_class, [BlueClass.SOUTH, BlueClass.EAST,
                                                    BlueClass.SOUTHEAST]))
    east = np.flatnonzero(np.isin(blue_class, [BlueClass.EAST, BlueClass.SOUTHEAST]))

    local = build_local_nodes(elements, topo.element2edges, edge2new, n_red)

    next_id = n_points + len(marked_edges)
    local[centred, C] = next_id + np.arange(len(centred))
    next_id += len(centred)
    for slot, groups in ((X_S, south), (X_SE, southeast), (X_E, east)):
        local[n_red + groups, slot] = next_id + np.arange(len(groups))
        next_id += len(groups)

    # --- 3. Node Coordinates (single allocation) ---
    new_coordinates = np.empty((next_id, 2), dtype=np.float64)
    new_coordinates[:n_points] = coordinates
    new_coordinates[edge2new[marked_edges]] = \
        coordinates[topo.edge2nodes[marked_edges]].mean(axis=1)
    new_coordinates[local[centred, C]] = coordinates[elements[centred]].mean(axis=1)
    for slot, groups, weights in ((X_S, south, SOUTH_WEIGHTS),
                                  (X_SE, southeast, SOUTHEAST_WEIGHTS),
                                  (X_E, east, EAST_WEIGHTS)):
        corners = new_coordinates[local[n_red + groups, P1:P4 + 1]]
        new_coordinates[local[n_red + groups, slot]] = np.einsum('k,nkd->nd', weights, corners)

    logger.debug('Created %d midpoints, %d centres and %d interior nodes.',
                 len(marked_edges), len(centred), len(south) + len(southeast) + len(east))

    # --- 4. Element Offsets (one counting pass) ---
    red_counts, blue_counts = _counts(red_class, RED_TEMPLATES)
    group_red_counts, group_blue_counts = _counts(blue_class, BLUE_TEMPLATES)
    red_counts = np.concatenate([red_counts, group_red_counts])
    blue_counts = np.concatenate([blue_counts, group_blue_counts])

    n_red_block = int(red_counts.sum())
    red_start = np.cumsum(red_counts) - red_counts
    blue_start = n_red_block + np.cumsum(blue_counts) - blue_counts
    n_blue_block = int(blue_counts.sum())

    # --- 5. Children ---
    new_elements = np.empty((n_red_block + n_blue_block, 4), dtype=np.int64)
    _write_children(new_elements, local[:n_red], red_class, RED_TEMPLATES,
                    red_start[:n_red], blue_start[:n_red])
    _write_children(new_elements, local[n_red:], blue_class, BLUE_TEMPLATES,
                    red_start[n_red:], blue_start[n_red:])

    logger.debug('Rebuilt %d elements into %d standalone and %d blue siblings.',
                 n_elements, n_red_block, n_blue_block)

    # --- 6. Boundary Conditions ---
    new_boundaries = [refine_boundary(b, b2e, edge2new)
                      for b, b2e in zip(boundaries, topo.boundary2edges)]

    logger.info('Refined %d marked of %d elements: %d -> %d elements, %d -> %d nodes.',
                len(np.unique(np.asarray(marked).ravel())), n_elements,
                n_elements, len(new_elements), n_points, next_id)

    return RefinementResult(new_coordinates, new_elements, new_boundaries, n_blue_block)


def refine_global(mesh):
    '''
    Marks every element of a QuadMesh and refines it.
    Returns a NEW QuadMesh.
    '''
    return mesh.refine(np.arange(mesh.n_elements))
