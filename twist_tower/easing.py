"""
Gradient (easing) functions mapping a normalised floor position t in [0, 1]
to an eased weight in [0, 1].
"""

from .params import BezierControlPoints, Gradient, clamp01

NEWTON_ITERATIONS = 8
NEWTON_MIN_SLOPE = 1e-3
NEWTON_TOLERANCE = 1e-7
BISECTION_ITERATIONS = 24


def _linear(t):
    return t


def _ease_in(t):
    return t * t


def _ease_out(t):
    return 1.0 - (1.0 - t) ** 2


def _ease_in_out(t):
    if t < 0.5:
        return 2.0 * t * t
    return 1.0 - (-2.0 * t + 2.0) ** 2 / 2.0


class CubicBezier:
    """
    CSS-style cubic-bezier(x1, y1, x2, y2) timing curve.

    The curve runs from (0, 0) to (1, 1) with the two control points in
    between.  For an input x the curve parameter u with Bx(u) = x is solved
    numerically (Newton first, bisection when the slope is too flat or Newton
    does not settle), and By(u) is returned.
    """

    def __init__(self, p1=(0.25, 0.1), p2=(0.75, 0.9)):
        pts = BezierControlPoints(p1, p2)
        self.p1 = pts.p1
        self.p2 = pts.p2
        (x1, y1), (x2, y2) = self.p1, self.p2
        # Polynomial coefficients: B(u) = ((a*u + b)*u + c)*u
        self._cx = 3.0 * x1
        self._bx = 3.0 * (x2 - x1) - self._cx
        self._ax = 1.0 - self._cx - self._bx
        self._cy = 3.0 * y1
        self._by = 3.0 * (y2 - y1) - self._cy
        self._ay = 1.0 - self._cy - self._by
        self._identity = (x1 == y1 and x2 == y2)

    @classmethod
    def from_points(cls, points: BezierControlPoints) -> "CubicBezier":
        return cls(points.p1, points.p2)

    def __repr__(self):
        return f"CubicBezier(p1={self.p1}, p2={self.p2})"

    def x_at(self, u: float) -> float:
        return ((self._ax * u + self._bx) * u + self._cx) * u

    def y_at(self, u: float) -> float:
        return ((self._ay * u + self._by) * u + self._cy) * u

    def dx_at(self, u: float) -> float:
        return (3.0 * self._ax * u + 2.0 * self._bx) * u + self._cx

    def solve_u(self, x: float) -> float:
        """Curve parameter u in [0, 1] with x_at(u) ~= x."""
        u = x
        for _ in range(NEWTON_ITERATIONS):
            err = self.x_at(u) - x
            if abs(err) < NEWTON_TOLERANCE:
                return u
            slope = self.dx_at(u)
            if abs(slope) < NEWTON_MIN_SLOPE:
                break
            u -= err / slope
            if u < 0.0 or u > 1.0:
                break

        # x_at is monotonic on [0, 1] because both control x's lie in [0, 1].
        lo, hi = 0.0, 1.0
        u = x
        for _ in range(BISECTION_ITERATIONS):
            u = 0.5 * (lo + hi)
            err = self.x_at(u) - x
            if abs(err) < NEWTON_TOLERANCE:
                break
            if err > 0.0:
                hi = u
            else:
                lo = u
        return u

    def __call__(self, t: float) -> float:
        if t <= 0.0:
            return 0.0
        if t >= 1.0:
            return 1.0
        if self._identity:
            return t
        return clamp01(self.y_at(self.solve_u(t)))


_EASINGS = {
    Gradient.LINEAR: _linear,
    Gradient.EASE_IN: _ease_in,
    Gradient.EASE_OUT: _ease_out,
    Gradient.EASE_IN_OUT: _ease_in_out,
}


def evaluate(kind, t: float, curve=None) -> float:
    """
    Eased weight of ``kind`` at ``t``.

    ``curve`` is only read for Gradient.BEZIER; it may be a CubicBezier or a
    BezierControlPoints and defaults to the standard (0.25, 0.1)/(0.75, 0.9)
    handles.
    """
    kind = Gradient.coerce(kind)
    t = clamp01(float(t))
    if kind is Gradient.BEZIER:
        if curve is None:
            curve = CubicBezier()
        elif isinstance(curve, BezierControlPoints):
            curve = CubicBezier.from_points(curve)
        return curve(t)
    try:
        ease = _EASINGS[kind]
    except KeyError:
        raise ValueError(f"[easing] No easing registered for {kind!r}")
    return ease(t)


class GradientEvaluator:
    """Binds one gradient kind (and its bezier handles) to a callable."""

    def __init__(self, kind, bezier: BezierControlPoints = None):
        self.kind = Gradient.coerce(kind)
        self.curve = None
        if self.kind is Gradient.BEZIER:
            self.curve = CubicBezier.from_points(bezier or BezierControlPoints())

    def __call__(self, t: float) -> float:
        return evaluate(self.kind, t, self.curve)
