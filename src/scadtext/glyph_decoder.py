"""
TrueType glyph outline decoding.

A TrueType contour is a closed loop of points, each flagged on-curve or
off-curve. Two on-curve points in a row form a line, an off-curve point between
two on-curve points is the control point of a quadratic Bezier, and two
off-curve points in a row imply an on-curve point at their midpoint. A contour
may start on an off-curve point, in which case the walk is anchored on the last
point (if on-curve) or on the implied midpoint of the last and first points.
"""

import logging

import numpy as np
from datatrees import datatree, dtfield

from scadtext.curves import flatten_quadratic

log = logging.getLogger(__name__)

# Three distinct vertices plus the closing repeat of the first.
MIN_CONTOUR_POINTS = 4


@datatree(frozen=True)
class GlyphOutline:
    """Raw glyph point data in font units."""

    coordinates: np.ndarray = dtfield(doc="Point coordinates, shape (N, 2), font units.")
    on_curve: np.ndarray = dtfield(doc="On-curve flag per point, shape (N,).")
    ends: tuple = dtfield(
        doc="Exclusive end index of each contour; contour k is [ends[k-1], ends[k])."
    )

    def __post_init__(self):
        coords = np.asarray(self.coordinates, dtype=float).reshape(-1, 2)
        on_curve = np.asarray(self.on_curve, dtype=bool).reshape(-1)
        if len(on_curve) != len(coords):
            raise ValueError(
                f"GlyphOutline has {len(coords)} points but {len(on_curve)} on-curve flags"
            )
        ends = tuple(int(e) for e in self.ends)
        if any(b < a for a, b in zip((0,) + ends, ends)) or (ends and ends[-1] > len(coords)):
            raise ValueError(f"GlyphOutline contour ends {ends} invalid for {len(coords)} points")
        object.__setattr__(self, "coordinates", coords)
        object.__setattr__(self, "on_curve", on_curve)
        object.__setattr__(self, "ends", ends)

    @classmethod
    def empty(cls) -> "GlyphOutline":
        return cls(np.empty((0, 2)), np.empty((0,), dtype=bool), ())

    @property
    def is_empty(self) -> bool:
        return not self.ends

    def contour_slices(self):
        start = 0
        for end in self.ends:
            yield slice(start, end)
            start = end


def decode_contour(points: np.ndarray, on_curve: np.ndarray, segments: int) -> np.ndarray | None:
    """Converts one TrueType contour into a closed polyline.

    Args:
        points: Contour points, shape (N, 2), already in output units.
        on_curve: On-curve flag per point.
        segments: Line segments per quadratic curve.

    Returns:
        Array of shape (M, 2) with contour[0] == contour[-1], or None if the
        contour is degenerate.
    """
    n = len(points)
    if n == 0:
        return None

    control = None
    if on_curve[0]:
        start = points[0]
        walk = range(1, n)
    elif on_curve[n - 1]:
        start = points[n - 1]
        walk = range(0, n - 1)
    else:
        start = (points[n - 1] + points[0]) / 2.0
        control = points[0]
        walk = range(1, n)

    pieces = [start[np.newaxis]]
    prev_on = start
    for i in walk:
        p = points[i]
        if on_curve[i]:
            if control is None:
                pieces.append(p[np.newaxis])
            else:
                pieces.append(flatten_quadratic(prev_on, control, p, segments))
                control = None
            prev_on = p
        elif control is None:
            control = p
        else:
            implied = (control + p) / 2.0
            pieces.append(flatten_quadratic(prev_on, control, implied, segments))
            prev_on = implied
            control = p

    # Close back to the anchor; both branches leave contour[-1] == start exactly.
    if control is not None:
        pieces.append(flatten_quadratic(prev_on, control, start, segments))
    elif not np.array_equal(pieces[-1][-1], start):
        pieces.append(start[np.newaxis])

    contour = np.vstack(pieces)
    if len(contour) < MIN_CONTOUR_POINTS or len(np.unique(contour, axis=0)) < 3:
        return None
    return contour


def decode_glyph(
    outline: GlyphOutline, pen_x: float, scale: float, segments: int
) -> list[np.ndarray]:
    """Decodes all contours of a glyph placed at pen_x (font units).

    Points map to output units as ((x + pen_x) * scale, y * scale) before any
    curve is flattened.
    """
    if outline.is_empty:
        return []
    coords = outline.coordinates
    points = np.column_stack(((coords[:, 0] + pen_x) * scale, coords[:, 1] * scale))

    contours = []
    for index, s in enumerate(outline.contour_slices()):
        contour = decode_contour(points[s], outline.on_curve[s], segments)
        if contour is None:
            log.debug(f"Dropping degenerate contour {index} ({s.stop - s.start} points).")
            continue
        contours.append(contour)
    return contours
