''' topology.py
    -----------
    Edge extraction for quadrilateral meshes.

    Every element (v1, v2, v3, v4) owns four local edges in a fixed order:

        e1 = (v1, v2)   e2 = (v2, v3)   e3 = (v3, v4)   e4 = (v4, v1)

    Edges are stored once as sorted vertex pairs, ordered lexicographically,
    so neighbouring elements share the same edge index. Boundary segments are
    resolved against the same edge list.
'''
from collections import namedtuple

import numpy as np

from .errors import InvalidTopology

# Local vertex pairs of the four edges, in element order
LOCAL_EDGES = np.array([[0, 1], [1, 2], [2, 3], [3, 0]])


Topology = namedtuple('Topology', ['edge2nodes', 'element2edges', 'boundary2edges'])
Topology.__doc__ = ''' Incidence data of a quadrilateral mesh.

    Attributes:
        edge2nodes (np.ndarray): (n_edges, 2) sorted vertex ids of every edge.
        element2edges (np.ndarray): (n_elements, 4) edge ids, columns e1..e4.
        boundary2edges (tuple of np.ndarray): edge id of every segment, one
            array per boundary list passed in.
'''


def as_coordinates(coordinates):
    ''' Returns node coordinates as an (n, 2) float64 array or raises. '''
    arr = np.asarray(coordinates, dtype=np.float64)
    if arr.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidTopology(f'Coordinates must have shape (n, 2), got {arr.shape}.')
    return arr


def as_elements(elements):
    ''' Returns the connectivity as an (n, 4) int64 array or raises. '''
    arr = np.asarray(elements)
    if arr.size == 0:
        return np.zeros((0, 4), dtype=np.int64)
    if arr.ndim != 2 or arr.shape[1] != 4:
        raise InvalidTopology(f'Elements must have shape (n, 4), got {arr.shape}.')
    if not np.issubdtype(arr.dtype, np.integer):
        raise InvalidTopology(f'Element vertex ids must be integers, got {arr.dtype}.')
    if arr.min() < 0:
        raise InvalidTopology('Element vertex ids must be non-negative.')
    return arr.astype(np.int64, copy=False)


def as_segments(boundary):
    ''' Returns a boundary list as an (n, 2) int64 array or raises. '''
    arr = np.asarray(boundary)
    if arr.size == 0:
        return np.zeros((0, 2), dtype=np.int64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidTopology(f'Boundary segments must have shape (n, 2), got {arr.shape}.')
    if not np.issubdtype(arr.dtype, np.integer):
        raise InvalidTopology(f'Boundary vertex ids must be integers, got {arr.dtype}.')
    return arr.astype(np.int64, copy=False)


def _pair_keys(pairs, stride):
    ''' Encodes vertex pairs as single integers (a * stride + b). '''
    return pairs[:, 0] * stride + pairs[:, 1]


def provide_geometric_data(elements, *boundaries):
    '''
    Builds the edge list and the element/boundary to edge incidence.

    Args:
        elements: (n_elements, 4) vertex ids, counter-clockwise.
        *boundaries: any number of (n, 2) boundary segment lists.

    Returns:
        Topology

    Raises:
        InvalidTopology: on degenerate or non-manifold edges, inconsistent
            winding, or a boundary segment that is not an edge of the mesh.
    '''
    elements = as_elements(elements)
    boundaries = [as_segments(b) for b in boundaries]
    n_elements = elements.shape[0]

    if n_elements == 0:
        if any(len(b) for b in boundaries):
            raise InvalidTopology('Boundary segments given for a mesh without elements.')
        return Topology(np.zeros((0, 2), dtype=np.int64),
                        np.zeros((0, 4), dtype=np.int64),
                        tuple(np.zeros(0, dtype=np.int64) for _ in boundaries))

    # --- 1. Directed Local Edges ---
    # Row-major: the four edges of element k sit at rows 4k .. 4k+3
    directed = elements[:, LOCAL_EDGES].reshape(-1, 2)
    if np.any(directed[:, 0] == directed[:, 1]):
        bad = np.flatnonzero(directed[:, 0] == directed[:, 1])[0] // 4
        raise InvalidTopology(f'Element {bad} repeats a vertex.')

    stride = 1 + max([int(elements.max(initial=-1))] +
                     [int(b.max(initial=-1)) for b in boundaries])

    # A consistently oriented manifold traverses each directed edge once
    _, directed_counts = np.unique(_pair_keys(directed, stride), return_counts=True)
    if np.any(directed_counts > 1):
        raise InvalidTopology('Neighbouring elements traverse a shared edge in the '
                              'same direction (inconsistent winding).')

    # --- 2. Unique Undirected Edges ---
    undirected = np.sort(directed, axis=1)
    edge2nodes, inverse, counts = np.unique(undirected, axis=0,
                                            return_inverse=True, return_counts=True)
    if np.any(counts > 2):
        edge = edge2nodes[np.flatnonzero(counts > 2)[0]]
        raise InvalidTopology(f'Edge ({edge[0]}, {edge[1]}) is shared by more '
                              f'than two elements.')
    element2edges = inverse.reshape(n_elements, 4)
    edge2nodes = edge2nodes.reshape(-1, 2)

    # --- 3. Boundary Segments ---
    # Sorted edge pairs give sorted keys, so each segment is a binary search away
    edge_keys = _pair_keys(edge2nodes, stride)
    boundary2edges = []
    for j, segments in enumerate(boundaries):
        keys = _pair_keys(np.sort(segments, axis=1), stride)
        idx = np.searchsorted(edge_keys, keys)
        found = idx < len(edge_keys)
        found[found] = edge_keys[idx[found]] == keys[found]
        if not np.all(found):
            a, b = segments[np.flatnonzero(~found)[0]]
            raise InvalidTopology(f'Boundary list {j}: segment ({a}, {b}) is not '
                                  f'an edge of the mesh.')
        boundary2edges.append(idx)

    return Topology(edge2nodes, element2edges, tuple(boundary2edges))
