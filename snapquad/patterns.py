''' patterns.py
    -----------
    Lookup tables that turn an edge-mark bit pattern into the marks still
    missing and the refinement class that results.

    A standalone ("red") quad reads its four edges e1..e4 as bits 0..3. A
    group of three blue siblings reads six edges along the boundary of its
    macro-quad as bits 0..5 (see closure.group_edges for the layout).

    Only a few patterns are admissible. Every other pattern is closed to the
    smallest admissible superset, which is what the MAP tables store. The
    tables are computed once at import and are read-only.
'''
from enum import IntEnum

import numpy as np


class RedClass(IntEnum):
    ''' Refinement of a standalone element. '''
    NONE = 0        # untouched
    RED = 1         # 4 children around a new centre
    BLUE_RIGHT = 2  # 3 children, edges e1 and e2 bisected
    BLUE_LEFT = 3   # 3 children, edges e3 and e4 bisected


class BlueClass(IntEnum):
    ''' Refinement of a group of three blue siblings. '''
    BLUE = 0        # group is kept as it is
    RED = 1         # macro-quad is red refined (4 children)
    EAST = 2        # macro-quad side P2-P3 refined further (8 children)
    SOUTH = 3       # macro-quad side P1-P2 refined further (8 children)
    SOUTHEAST = 4   # both sides refined further (11 children)


# Admissible patterns, one row per class value 1, 2, ...
RED_HASH = np.array([[1, 1, 1, 1],
                     [1, 1, 0, 0],
                     [0, 0, 1, 1]], dtype=bool)

BLUE_HASH = np.array([[1, 1, 0, 0, 0, 0],
                      [1, 1, 1, 0, 0, 1],
                      [1, 1, 0, 1, 1, 0],
                      [1, 1, 1, 1, 1, 1]], dtype=bool)


def bits_to_int(bits):
    ''' Packs an (n, n_bits) boolean array into integers (bit k = column k). '''
    bits = np.asarray(bits, dtype=np.int64)
    return bits @ (np.int64(1) << np.arange(bits.shape[-1], dtype=np.int64))


def int_to_bits(dec, n_bits):
    ''' Unpacks integers into an (n, n_bits) boolean array. '''
    dec = np.asarray(dec, dtype=np.int64)
    return ((dec[..., None] >> np.arange(n_bits)) & 1).astype(bool)


def hash_to_map(hash_rows):
    '''
    Expands a list of admissible patterns into full lookup tables.

    For every pattern 0 .. 2**n_bits - 1 the smallest admissible row that
    contains it is chosen; among rows of equal size the first one wins.
    The empty pattern maps to itself with value 0.

    Args:
        hash_rows (np.ndarray): (n_rows, n_bits) boolean admissible patterns.

    Returns:
        mapping (np.ndarray): (2**n_bits, n_bits) bool, the closed pattern.
        value (np.ndarray): (2**n_bits,) int, 1-based row index or 0.
    '''
    hash_rows = np.asarray(hash_rows, dtype=bool)
    n_bits = hash_rows.shape[1]
    bits = int_to_bits(np.arange(2 ** n_bits), n_bits)

    # covers[p, r]: row r contains every bit of pattern p
    covers = np.all(hash_rows[None, :, :] >= bits[:, None, :], axis=2)
    if not np.all(covers.any(axis=1)):
        raise ValueError('Admissible patterns do not cover every bit pattern.')

    cost = np.where(covers, hash_rows.sum(axis=1)[None, :], n_bits + 1)
    choice = np.argmin(cost, axis=1)

    mapping = hash_rows[choice]
    value = choice + 1
    mapping[0] = False
    value[0] = 0
    return mapping, value


def _frozen(*arrays):
    for arr in arrays:
        arr.setflags(write=False)
    return arrays


RED_MAP, RED_VALUE = _frozen(*hash_to_map(RED_HASH))
BLUE_MAP, BLUE_VALUE = _frozen(*hash_to_map(BLUE_HASH))
_frozen(RED_HASH, BLUE_HASH)
