''' closure.py
    ----------
    Edge marking for red-blue refinement.

    The element list is split into standalone ("red") elements at the front
    and groups of three blue siblings at the back. Each group covers one
    macro-quad P1 P2 P3 P4 that was blue refined earlier, with M1 the
    midpoint of P1-P2, M2 the midpoint of P2-P3 and C its centre:

        g1 = (P3, P4, C, M2)    along side P3-P4
        g2 = (P1, M1, C, P4)    along side P4-P1
        g3 = (M1, P2, M2, C)    quadrant at corner P2

    Marks are seeded from the marked elements and then closed: every element
    and group is raised to an admissible pattern until nothing changes.
'''
import logging
import operator
from collections import namedtuple

import numpy as np

from .errors import InvalidMarking, InvalidSiblingCount
from .patterns import BLUE_HASH, BLUE_MAP, BLUE_VALUE, RED_MAP, RED_VALUE, bits_to_int

logger = logging.getLogger(__name__)


Marking = namedtuple('Marking', ['edge_marks', 'red_class', 'blue_class', 'n_passes'])


def check_sibling_count(n_elements, n_blue):
    ''' Validates the number of trailing blue siblings and returns n_red. '''
    try:
        n_blue = operator.index(n_blue)
    except TypeError:
        raise InvalidSiblingCount(f'Sibling count must be an integer, got {n_blue!r}.') from None
    if n_blue < 0 or n_blue > n_elements or n_blue % 3:
        raise InvalidSiblingCount(f'Sibling count {n_blue} does not describe complete '
                                  f'groups of three within {n_elements} elements.')
    return n_elements - n_blue


def group_edges(element2edges, n_red):
    '''
    Edge ids along the boundary of every macro-quad, shape (n_groups, 6).

    Columns: (P3,P4), (P4,P1), (M2,P3), (P1,M1), (M1,P2), (P2,M2).
    '''
    g1 = element2edges[n_red::3]
    g2 = element2edges[n_red + 1::3]
    g3 = element2edges[n_red + 2::3]
    return np.column_stack([g1[:, 0], g2[:, 3], g1[:, 3],
                            g2[:, 0], g3[:, 0], g3[:, 1]]).reshape(-1, 6)


def split_edges(element2edges, n_red):
    ''' Interior edges (C,M2) and (M1,C) of every group, shape (n_groups, 2). '''
    g1 = element2edges[n_red::3]
    g2 = element2edges[n_red + 1::3]
    return np.column_stack([g1[:, 2], g2[:, 1]]).reshape(-1, 2)


def seed_marks(element2edges, n_edges, marked, n_blue=0):
    '''
    Initial edge marks for a set of marked element indices.

    A standalone element marks its four edges. A blue sibling marks the two
    macro-quad edges that are not yet bisected, so the whole macro-quad will
    be red refined.

    Raises:
        InvalidMarking: if an index is not an element of the mesh.
    '''
    n_elements = element2edges.shape[0]
    n_red = check_sibling_count(n_elements, n_blue)

    marked = np.asarray(marked).ravel()
    if marked.size and not np.issubdtype(marked.dtype, np.integer):
        raise InvalidMarking(f'Marked indices must be integers, got {marked.dtype}.')
    marked = marked.astype(np.int64)
    outside = (marked < 0) | (marked >= n_elements)
    if np.any(outside):
        raise InvalidMarking(f'Marked index {marked[outside][0]} is not an element '
                             f'(mesh has {n_elements} elements).')

    marks = np.zeros(n_edges, dtype=bool)
    marks[element2edges[marked[marked < n_red]].ravel()] = True

    groups = np.unique((marked[marked >= n_red] - n_red) // 3)
    marks[group_edges(element2edges, n_red)[groups, :2].ravel()] = True
    return marks


def close_marks(marks, element2edges, n_red):
    '''
    Adds forced marks until every element and group pattern is admissible.

    Marks only grow, so the loop ends after at most n_edges passes.

    Returns:
        closed (np.ndarray): new boolean edge marks.
        n_passes (int): number of passes, including the final quiet one.
    '''
    closed = np.array(marks, dtype=bool, copy=True)
    red_edges = element2edges[:n_red]
    blue_edges = group_edges(element2edges, n_red)

    n_passes = 0
    while True:
        n_passes += 1
        red_bits = closed[red_edges]
        red_missing = RED_MAP[bits_to_int(red_bits)] & ~red_bits

        blue_bits = closed[blue_edges]
        blue_missing = BLUE_MAP[bits_to_int(blue_bits)] & ~blue_bits

        if not (red_missing.any() or blue_missing.any()):
            return closed, n_passes

        closed[red_edges[red_missing]] = True
        closed[blue_edges[blue_missing]] = True


def classify(marks, element2edges, n_red):
    '''
    Refinement class of every element and group for closed marks.

    Groups refined beyond RED also need their interior split edges
    bisected; those marks are added to the returned copy.

    Returns:
        marks (np.ndarray), red_class (np.ndarray), blue_class (np.ndarray)
    '''
    marks = np.array(marks, dtype=bool, copy=True)
    red_class = RED_VALUE[bits_to_int(marks[element2edges[:n_red]])]

    blue_class = BLUE_VALUE[bits_to_int(marks[group_edges(element2edges, n_red)])]

    # Bits 2 and 3 of the admissible row decide (C,M2) and (M1,C)
    refined = blue_class > 0
    needs_split = BLUE_HASH[blue_class[refined] - 1][:, 2:4]
    marks[split_edges(element2edges, n_red)[refined][needs_split]] = True
    return marks, red_class, blue_class


def mark_for_refinement(element2edges, n_edges, marked, n_blue=0):
    ''' Seeds, closes and classifies in one go. Returns a Marking. '''
    n_red = check_sibling_count(element2edges.shape[0], n_blue)
    seeded = seed_marks(element2edges, n_edges, marked, n_blue)
    closed, n_passes = close_marks(seeded, element2edges, n_red)
    logger.debug('Closure reached a fixed point after %d passes '
                 '(%d seeded, %d closed edge marks).',
                 n_passes, int(seeded.sum()), int(closed.sum()))
    edge_marks, red_class, blue_class = classify(closed, element2edges, n_red)
    return Marking(edge_marks, red_class, blue_class, n_passes)
