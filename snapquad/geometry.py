''' geometry.py
    -----------
    Parametric curves bounding a structured quad region. Each curve maps
    t in [0, 1] to (x, y); t may be a scalar or a numpy array.
'''
import numpy as np
from abc import ABC, abstractmethod


class ParametricCurve(ABC):
    ''' Abstract base for all 1D Curves. '''

    @abstractmethod
    def evaluate(self, t):
        ''' Returns (x, y) coordinates at parameter t (0.0 <= t <= 1.0). '''
        pass

    @property
    def start(self):
        return self.evaluate(0.0)

    @property
    def end(self):
        return self.evaluate(1.0)


class LineSegment(ParametricCurve):
    """
    A straight line connecting two points (p1, p2).
    """
    def __init__(self, p1, p2):
        self.p1 = np.array(p1, dtype=np.float64)
        self.p2 = np.array(p2, dtype=np.float64)
        self.vec = self.p2 - self.p1

        if np.dot(self.vec, self.vec) == 0:
            raise ValueError("LineSegment cannot be zero length.")

    def evaluate(self, t):
        """ Returns point(s) at t (0.0 = p1, 1.0 = p2). """
        t = np.asarray(t, dtype=np.float64)
        return self.p1 + t[..., None] * self.vec

    def __repr__(self):
        return f"LineSegment(p1={self.p1}, p2={self.p2})"


class Arc(ParametricCurve):
    """
    A circular arc around (cx, cy) with radius r, swept from start_angle
    to end_angle (radians, counter-clockwise when end > start).
    """
    def __init__(self, cx, cy, r, start_angle, end_angle):
        if r <= 0:
            raise ValueError("Arc radius must be positive.")
        self.center = np.array([cx, cy], dtype=np.float64)
        self.r = float(r)
        self.theta0 = float(start_angle)
        self.sweep = float(end_angle) - float(start_angle)

    def evaluate(self, t):
        theta = self.theta0 + self.sweep * np.asarray(t, dtype=np.float64)
        return self.center + self.r * np.stack([np.cos(theta), np.sin(theta)], axis=-1)

    def __repr__(self):
        return (f"Arc(center={self.center}, r={self.r}, "
                f"sweep={np.degrees(self.sweep):.1f} deg)")
