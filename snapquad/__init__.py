# snapquad/__init__.py

__version__ = "1.0"

# Import Errors
from .errors import RefinementError, InvalidMarking, InvalidTopology, InvalidSiblingCount

# Import the Mesh class
from .mesh import QuadMesh, BCTag

# Import Refinement
from .patterns import RedClass, BlueClass
from .topology import provide_geometric_data
from .refine import refine_red_blue, refine_global, RefinementResult

# Import Geometry and Generation
from .geometry import LineSegment, Arc
from .transfinite import generate_structured_quad_mesh, rectangle
