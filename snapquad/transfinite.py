import numpy as np

from .geometry import LineSegment
from .mesh import BCTag, QuadMesh

SIDES = ('bottom', 'right', 'top', 'left')


def generate_structured_quad_mesh(bottom_curve, top_curve, left_curve, right_curve,
                                  ni, nj, tags=None):
    """
    Generates a structured quadrilateral mesh inside a 4-sided region.

    The bottom and top curves run left to right, the left and right curves
    run bottom to top, so every quad comes out counter-clockwise.

    Parameters:
      ni: Number of nodes along the Bottom/Top direction
      nj: Number of nodes along the Left/Right direction
      tags: optional dict side name -> boundary tag
            ('bottom', 'right', 'top', 'left'); unlisted sides get
            BCTag.DIRICHLET.
    """
    if ni < 2 or nj < 2:
        raise ValueError("Need at least 2 nodes in each direction.")
    tags = {side: (tags or {}).get(side, BCTag.DIRICHLET) for side in SIDES}

    # --- 1. Evaluate Boundaries ---
    u = np.linspace(0.0, 1.0, ni)
    v = np.linspace(0.0, 1.0, nj)
    bottom = bottom_curve.evaluate(u)   # (ni, 2)
    top = top_curve.evaluate(u)
    left = left_curve.evaluate(v)       # (nj, 2)
    right = right_curve.evaluate(v)

    p00, p10 = left[0], right[0]
    p01, p11 = left[-1], right[-1]

    # --- 2. Gordon-Hall Interpolation ---
    # P(u,v) = (1-v)*Bottom(u) + v*Top(u) + (1-u)*Left(v) + u*Right(v)
    #          - [ Bilinear Interpolation of Corners ]
    U = u[None, :, None]
    V = v[:, None, None]
    points = ((1 - V) * bottom[None, :, :] + V * top[None, :, :]
              + (1 - U) * left[:, None, :] + U * right[:, None, :]
              - ((1 - U) * (1 - V) * p00 + U * (1 - V) * p10
                 + (1 - U) * V * p01 + U * V * p11))
    coordinates = points.reshape(-1, 2)   # node id = j * ni + i

    # --- 3. Connect Nodes into Quads ---
    ids = np.arange(ni * nj).reshape(nj, ni)
    n1 = ids[:-1, :-1].ravel()
    n2 = ids[:-1, 1:].ravel()
    n3 = ids[1:, 1:].ravel()
    n4 = ids[1:, :-1].ravel()
    elements = np.column_stack([n1, n2, n3, n4])

    # --- 4. Tag Boundaries (counter-clockwise) ---
    sides = {
        'bottom': np.column_stack([ids[0, :-1], ids[0, 1:]]),
        'right': np.column_stack([ids[:-1, -1], ids[1:, -1]]),
        'top': np.column_stack([ids[-1, 1:], ids[-1, :-1]]),
        'left': np.column_stack([ids[1:, 0], ids[:-1, 0]]),
    }
    boundaries = {}
    for side in SIDES:
        tag = tags[side]
        boundaries[tag] = np.vstack([boundaries.get(tag, np.zeros((0, 2), dtype=np.int64)),
                                     sides[side]])

    return QuadMesh(coordinates, elements, boundaries)


def rectangle(width, height, nx, ny, origin=(0.0, 0.0), tags=None):
    """ nx by ny quads covering [x0, x0+width] x [y0, y0+height]. """
    x0, y0 = origin
    x1, y1 = x0 + width, y0 + height
    return generate_structured_quad_mesh(
        LineSegment((x0, y0), (x1, y0)), LineSegment((x0, y1), (x1, y1)),
        LineSegment((x0, y0), (x0, y1)), LineSegment((x1, y0), (x1, y1)),
        nx + 1, ny + 1, tags=tags)
