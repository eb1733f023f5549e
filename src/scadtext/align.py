"""
Text alignment following OpenSCAD's text() conventions.

Horizontal alignment is relative to the pen line rather than the ink: "left"
keeps the pen origin at x=0, "right" puts the pen's end position (origin plus
total advance) at x=0, and only "center" uses the ink bounds. Vertical
alignment uses the ink bounds except for "baseline", which leaves the glyphs'
own baseline at y=0.
"""

from enum import Enum

import numpy as np
from datatrees import datatree, dtfield

from scadtext.curves import extentsof


class HAlign(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VAlign(Enum):
    BASELINE = "baseline"
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


@datatree(frozen=True)
class Extents:
    """2D ink bounds and pen span of a laid out text run, in model units."""

    min_point: np.ndarray = dtfield(
        default_factory=lambda: np.array([float("inf"), float("inf")])
    )
    max_point: np.ndarray = dtfield(
        default_factory=lambda: np.array([float("-inf"), float("-inf")])
    )
    pen_start: float = dtfield(default=0.0, doc="Pen X where the run begins.")
    pen_end: float = dtfield(default=0.0, doc="Pen X after the last advance.")

    def include(self, points: np.ndarray) -> "Extents":
        """Returns extents grown to cover points, shape (N, 2)."""
        if len(points) == 0:
            return self
        lo, hi = extentsof(points)
        return Extents(
            min_point=np.minimum(self.min_point, lo),
            max_point=np.maximum(self.max_point, hi),
            pen_start=self.pen_start,
            pen_end=self.pen_end,
        )

    def with_pen_span(self, pen_start: float, pen_end: float) -> "Extents":
        return Extents(
            min_point=self.min_point,
            max_point=self.max_point,
            pen_start=pen_start,
            pen_end=pen_end,
        )

    def translated(self, dx: float, dy: float) -> "Extents":
        offset = np.array([dx, dy])
        return Extents(
            min_point=self.min_point + offset,
            max_point=self.max_point + offset,
            pen_start=self.pen_start + dx,
            pen_end=self.pen_end + dx,
        )


def alignment_offset(extents: Extents, halign: HAlign, valign: VAlign) -> tuple[float, float]:
    """Returns the (dx, dy) translation realising the given anchor.

    Args:
        extents: Ink bounds and pen span of the run.
        halign: Horizontal anchor.
        valign: Vertical anchor.
    """
    min_x, min_y = extents.min_point
    max_x, max_y = extents.max_point

    if halign is HAlign.LEFT:
        dx = -extents.pen_start
    elif halign is HAlign.CENTER:
        dx = -(min_x + (max_x - min_x) / 2.0)
    elif halign is HAlign.RIGHT:
        dx = -extents.pen_end
    else:
        raise AssertionError(f"Unknown HAlign: {halign!r}")

    if valign is VAlign.BASELINE:
        dy = 0.0
    elif valign is VAlign.TOP:
        dy = -max_y
    elif valign is VAlign.CENTER:
        dy = -(min_y + (max_y - min_y) / 2.0)
    elif valign is VAlign.BOTTOM:
        dy = -min_y
    else:
        raise AssertionError(f"Unknown VAlign: {valign!r}")

    return float(dx), float(dy)
