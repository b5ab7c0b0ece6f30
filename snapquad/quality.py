"""
snapquad/quality.py
-------------------
Tools for inspecting quadrilateral meshes after refinement.
Calculates Area, Minimum Angle and Aspect Ratio per element, finds
hanging nodes, and draws the mesh.
"""
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection, PolyCollection

from .topology import provide_geometric_data

# Tolerance for avoiding floating point errors in geometric checks
GEOM_TOL = 1e-12


def element_metrics(coordinates, elements):
    '''
    Vectorized quality metrics of every quad.

    Returns:
        areas (np.ndarray): signed areas (positive for counter-clockwise).
        min_angles (np.ndarray): smallest interior angle in degrees.
        aspect_ratios (np.ndarray): longest over shortest edge.
    '''
    pts = np.asarray(coordinates, dtype=np.float64)[np.asarray(elements)]  # (n, 4, 2)
    nxt = np.roll(pts, -1, axis=1)
    prv = np.roll(pts, 1, axis=1)

    # Shoelace
    areas = 0.5 * np.sum(pts[..., 0] * nxt[..., 1] - nxt[..., 0] * pts[..., 1], axis=1)

    lengths = np.linalg.norm(nxt - pts, axis=2)
    aspect_ratios = lengths.max(axis=1) / np.maximum(lengths.min(axis=1), GEOM_TOL)

    a = nxt - pts
    b = prv - pts
    denom = np.linalg.norm(a, axis=2) * np.linalg.norm(b, axis=2)
    cos_theta = np.sum(a * b, axis=2) / np.maximum(denom, GEOM_TOL)
    angles = np.degrees(np.arccos(np.clip(cos_theta, -1.0, 1.0)))
    return areas, angles.min(axis=1), aspect_ratios


def find_hanging_nodes(coordinates, elements, tol=1e-9, block=256):
    '''
    Vertex ids lying strictly inside an edge of some element.

    A conforming mesh has none: a vertex in the middle of a neighbour's edge
    means the neighbour was not split along with it.

    Every edge is tested against every vertex, so the work grows with
    n_edges * n_nodes. Edges are processed `block` at a time to bound the
    size of the temporary (block, n_nodes, 2) arrays.
    '''
    coordinates = np.asarray(coordinates, dtype=np.float64)
    topo = provide_geometric_data(elements)
    used = np.unique(np.asarray(elements))
    pts = coordinates[used]

    hanging = np.zeros(len(used), dtype=bool)
    for start in range(0, len(topo.edge2nodes), block):
        edges = topo.edge2nodes[start:start + block]
        pa = coordinates[edges[:, 0]]
        vec = coordinates[edges[:, 1]] - pa
        len_sq = np.einsum('ij,ij->i', vec, vec)
        keep = len_sq >= GEOM_TOL
        pa, vec, len_sq = pa[keep], vec[keep], len_sq[keep]

        rel = pts[None, :, :] - pa[:, None, :]                  # (b, V, 2)
        t = np.einsum('bvd,bd->bv', rel, vec) / len_sq[:, None]
        # |rel x vec| is distance * length, compared against tol * length
        cross = np.abs(rel[..., 0] * vec[:, None, 1] - rel[..., 1] * vec[:, None, 0])
        inside = (t > tol) & (t < 1.0 - tol) & (cross < tol * len_sq[:, None])
        hanging |= inside.any(axis=0)
    return used[hanging].astype(np.int64)


def is_conforming(coordinates, elements, tol=1e-9):
    ''' True when the mesh has no hanging nodes. '''
    return len(find_hanging_nodes(coordinates, elements, tol)) == 0


class MeshQuality:
    """
    Inspector class for a QuadMesh object.

    Usage:
        inspector = MeshQuality(mesh)
        inspector.analyze()
        inspector.print_report()
        inspector.plot_histograms()
    """
    def __init__(self, mesh):
        self.mesh = mesh
        # Metric Storage
        self.areas = np.zeros(0)
        self.min_angles = np.zeros(0)
        self.aspect_ratios = np.zeros(0)

        self._analyzed = False

    def analyze(self):
        """
        Computes metrics for all elements.
        """
        self.areas, self.min_angles, self.aspect_ratios = element_metrics(
            self.mesh.coordinates, self.mesh.elements)
        self._analyzed = True

    @property
    def n_inverted(self):
        ''' Number of elements with non-positive area. '''
        if not self._analyzed: self.analyze()
        return int(np.count_nonzero(self.areas <= GEOM_TOL))

    def print_report(self):
        """ Prints a summary to stdout. """
        if not self._analyzed: self.analyze()

        print(f"--- Mesh Quality Report ({len(self.areas)} Quads, "
              f"{self.mesh.n_blue} Blue) ---")
        if len(self.areas) == 0:
            return

        print(f"Area:")
        print(f"  Min: {self.areas.min():.2e} m^2")
        print(f"  Max: {self.areas.max():.2e} m^2")
        print(f"  Sum: {self.areas.sum():.6e} m^2")
        if self.n_inverted:
            print(f"  [!] WARNING: {self.n_inverted} inverted or degenerate quads")

        min_ang = self.min_angles.min()
        print(f"Min Angle: {min_ang:.2f} deg  ", end="")
        if min_ang < 20.0: print("[!] WARNING: Slivers Detected")
        elif min_ang < 40.0: print("[~] CAUTION: Low Quality")
        else: print("[OK] Good")

        max_ar = self.aspect_ratios.max()
        print(f"Max Aspect Ratio: {max_ar:.2f}  ", end="")
        if max_ar > 10.0: print("[!] WARNING: Highly Stretched")
        elif max_ar > 3.0: print("[~] CAUTION")
        else: print("[OK]")

    def plot_histograms(self):
        """ Visualizes the distribution of quality metrics. """
        if not self._analyzed: self.analyze()

        fig, ax = plt.subplots(1, 3, figsize=(15, 4))

        def safe_hist(axis, data, color, title, xlabel, limit_line=None):
            if len(data) == 0: return

            # Identical values break automatic binning
            dmin, dmax = data.min(), data.max()
            if np.isclose(dmin, dmax):
                padding = max(1e-6, abs(dmin)*0.1)
                bins = np.linspace(dmin - padding, dmax + padding, 10)
                axis.hist(data, bins=bins, color=color, edgecolor='black')
            else:
                axis.hist(data, bins=20, color=color, edgecolor='black')

            axis.set_title(title)
            axis.set_xlabel(xlabel)
            if limit_line:
                axis.axvline(limit_line, color='red', linestyle='--', label='Limit')
                axis.legend()

        safe_hist(ax[0], self.min_angles, 'skyblue',
                 "Minimum Angle (Target > 40°)", "Degrees", limit_line=40)
        safe_hist(ax[1], self.aspect_ratios, 'lightgreen',
                 "Aspect Ratio (Target < 3.0)", "Ratio", limit_line=3.0)
        safe_hist(ax[2], self.areas, 'salmon',
                 "Quad Areas", "Area [m^2]")

        plt.tight_layout()
        return fig


def plot_mesh(mesh, ax=None, show_nodes=False):
    '''
    Draws the quads of a QuadMesh. Blue siblings are shaded, boundary
    segments are drawn on top with one colour per tag.
    '''
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 6))

    polys = mesh.coordinates[mesh.elements]
    colors = ['whitesmoke'] * mesh.n_red + ['lightsteelblue'] * mesh.n_blue
    ax.add_collection(PolyCollection(polys, facecolors=colors,
                                     edgecolors='black', linewidths=0.5))

    cycle = plt.rcParams['axes.prop_cycle'].by_key().get('color', ['red'])
    for k, (tag, segments) in enumerate(mesh.boundaries.items()):
        if len(segments) == 0: continue
        lines = LineCollection(mesh.coordinates[segments], linewidths=2.0,
                               colors=cycle[k % len(cycle)],
                               label=getattr(tag, 'name', str(tag)))
        ax.add_collection(lines)

    if show_nodes:
        ax.plot(mesh.coordinates[:, 0], mesh.coordinates[:, 1], 'k.', markersize=2)

    if mesh.boundaries:
        ax.legend(loc='upper right')
    ax.set_aspect('equal')
    ax.autoscale_view()
    return ax
