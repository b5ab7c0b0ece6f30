"""
ex02_structured_annulus.py
--------------------------
Goal: Generate a quarter annulus with transfinite interpolation, then
      refine the quads along the inner arc twice.
"""
import numpy as np
import matplotlib.pyplot as plt

from snapquad import Arc, LineSegment, BCTag, generate_structured_quad_mesh
from snapquad.quality import MeshQuality, plot_mesh


def run():
    r_in, r_out = 1.0, 2.0

    print("1. Generating Quarter Annulus...")
    mesh = generate_structured_quad_mesh(
        LineSegment((r_in, 0), (r_out, 0)),
        LineSegment((0, r_in), (0, r_out)),
        Arc(0.0, 0.0, r_in, 0.0, np.pi / 2),
        Arc(0.0, 0.0, r_out, 0.0, np.pi / 2),
        ni=6, nj=12,
        tags={'left': BCTag.NEUMANN})   # inner arc

    print("2. Refining Near The Inner Wall...")
    for _ in range(2):
        centroids = mesh.coordinates[mesh.elements].mean(axis=1)
        radius = np.linalg.norm(centroids, axis=1)
        marked = np.flatnonzero(radius < radius.min() + 0.05)
        mesh = mesh.refine(marked)
        print(f"   {mesh}")

    inspector = MeshQuality(mesh)
    inspector.print_report()
    inspector.plot_histograms()

    plot_mesh(mesh, show_nodes=True)
    plt.show()


if __name__ == "__main__":
    run()
