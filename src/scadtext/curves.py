from datatrees import datatree, dtfield
import numpy as np

EPSILON = 1e-6


def extentsof(p: np.ndarray) -> np.ndarray:
    return np.array((p.min(axis=0), p.max(axis=0)))


@datatree(frozen=True)
class QuadraticSpline:
    """Quadratic Bezier evaluator in Bernstein form, with extents."""

    p: object = dtfield(doc="The control points for the spline, shape (3, N).")
    dimensions: int = dtfield(
        self_default=lambda s: np.asarray(s.p).shape[1],  # Get dim from shape
        init=True,
        doc="The number of dimensions in the spline.",
    )

    def __post_init__(self):
        p_arr = np.asarray(self.p, dtype=float)
        if p_arr.ndim != 2 or p_arr.shape[0] != 3 or p_arr.shape[1] != self.dimensions:
            raise ValueError(
                f"QuadraticSpline control points 'p' must have shape (3, dims), got {p_arr.shape}"
            )
        object.__setattr__(self, "p", p_arr)

    def evaluate(self, t):
        """
        Evaluates the spline at one or more t values.

        The Bernstein form is used rather than the power basis so that t=0 and
        t=1 reproduce the end points bit for bit.

        Args:
            t: Scalar or array of t values where to evaluate the spline

        Returns:
            For scalar t: array of shape (dimensions,) with the point coordinates
            For array t: array of shape (len(t), dimensions) with point coordinates
        """
        t_arr = np.asarray(t, dtype=float)
        u = 1.0 - t_arr
        # Weights with shape (3,) or (3, N)
        weights = np.array([u * u, 2.0 * u * t_arr, t_arr * t_arr])

        if t_arr.ndim == 0:
            return weights[0] * self.p[0] + weights[1] * self.p[1] + weights[2] * self.p[2]
        return (
            weights[0][:, np.newaxis] * self.p[0]
            + weights[1][:, np.newaxis] * self.p[1]
            + weights[2][:, np.newaxis] * self.p[2]
        )

    def flatten(self, segments: int) -> np.ndarray:
        """Returns `segments` points at t = 1/segments .. 1, excluding the start point."""
        if segments <= 0:
            raise ValueError(f"segments must be > 0, got {segments}")
        t_values = np.arange(1, segments + 1, dtype=float) / segments
        return self.evaluate(t_values)

    def curve_maxima_minima_t(self, t_range: tuple[float, float] = (0.0, 1.0)):
        """Per dimension, the t values where the derivative is zero."""
        # B'(t) = 2(c - p0) + 2t(p0 - 2c + p2)
        p0, c, p2 = self.p
        a = p0 - 2.0 * c + p2
        b = c - p0
        result = {}
        for i in range(self.dimensions):
            if np.isclose(a[i], 0):
                result[i] = ()
                continue
            t = -b[i] / a[i]
            result[i] = (t,) if t_range[0] - EPSILON <= t <= t_range[1] + EPSILON else ()
        return result

    def extremes(self):
        t_values = {0.0, 1.0}
        for v in self.curve_maxima_minima_t().values():
            t_values.update(v)
        clamped_t_values = np.clip(sorted(t_values), 0.0, 1.0)
        return self.evaluate(clamped_t_values)

    def extents(self):
        return extentsof(self.extremes())


def flatten_quadratic(p0, control, p2, segments: int) -> np.ndarray:
    """Subdivides the quadratic (p0, control, p2) into `segments` line segments.

    The returned array holds the segment end points, shape (segments, 2). p0 is
    not included since the caller already holds it; p2 is the last row exactly.
    """
    return QuadraticSpline(np.array([p0, control, p2], dtype=float)).flatten(segments)
