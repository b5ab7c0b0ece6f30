''' errors.py
    ---------
    Exceptions raised by the refinement routines. Every error derives from
    ValueError as well, since each one reports bad input data.
'''


class RefinementError(Exception):
    ''' Base class for all snapquad errors. '''


class InvalidMarking(RefinementError, ValueError):
    ''' A marked index does not reference an existing element. '''


class InvalidTopology(RefinementError, ValueError):
    ''' Connectivity is malformed: non-manifold edges, inconsistent winding,
        or boundary segments that are not mesh edges. '''


class InvalidSiblingCount(RefinementError, ValueError):
    ''' The number of blue sibling elements does not fit the element list. '''
