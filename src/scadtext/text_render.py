import logging
from functools import reduce

import numpy as np
from datatrees import datatree, dtfield

from scadtext.align import Extents, HAlign, VAlign, alignment_offset
from scadtext.font import Font, GlyphLoadError
from scadtext.glyph_decoder import decode_glyph
from scadtext.shaping import PositionedGlyph, ShapedRun, shape_text

"""
Text Rendering Module
--------------------

Converts a run of text into closed polygon contours sized and aligned like
OpenSCAD's text(size=..., halign=..., valign=..., spacing=...).

The workflow involves:
1. Shaping the text into positioned glyphs (HarfBuzz when the font has a
   HarfBuzz face, otherwise advance widths plus legacy kern pairs)
2. Scaling so the font ascender maps to `size` model units
3. Decoding each glyph's TrueType points into flattened contours at its pen
   position, while accumulating the ink bounds
4. Translating every contour by a single offset for the chosen anchor
"""

log = logging.getLogger(__name__)

DEFAULT_SEGMENTS = 8


@datatree(frozen=True)
class TextOptions:
    size: float = dtfield(default=10.0, doc="Target ascent (baseline to top) in model units.")
    segments: int = dtfield(
        default=DEFAULT_SEGMENTS,
        doc="Line segments per quadratic curve; values <= 0 select the default.",
    )
    halign: HAlign = dtfield(default=HAlign.LEFT, doc="left, center or right.")
    valign: VAlign = dtfield(default=VAlign.BASELINE, doc="baseline, top, center or bottom.")
    kerning: bool = dtfield(default=True, doc="Apply pair kerning.")
    spacing: float = dtfield(default=1.0, doc="Advance multiplier; 0 means 1.")

    def __post_init__(self):
        if not self.size > 0:
            raise ValueError(f"size must be > 0, got {self.size}")
        if self.spacing < 0:
            raise ValueError(f"spacing must be >= 0, got {self.spacing}")
        if self.spacing == 0:
            object.__setattr__(self, "spacing", 1.0)
        if self.segments <= 0:
            object.__setattr__(self, "segments", DEFAULT_SEGMENTS)
        # Accept the OpenSCAD strings as well as enum members.
        object.__setattr__(self, "halign", HAlign(self.halign))
        object.__setattr__(self, "valign", VAlign(self.valign))


@datatree(frozen=True)
class LayoutState:
    """Contours placed so far and their extents, in model units."""

    outlines: tuple = dtfield(default=())
    extents: Extents = dtfield(default_factory=Extents)

    def add_glyph(
        self, font: Font, glyph: PositionedGlyph, scale: float, segments: int
    ) -> "LayoutState":
        try:
            outline = font.glyph_outline(glyph.index)
        except GlyphLoadError as e:
            log.info(f"No outline for glyph {glyph.index} ({e.reason}). Advancing pen.")
            return self

        contours = decode_glyph(outline, glyph.pen_x, scale, segments)
        if not contours:
            return self
        return LayoutState(
            outlines=self.outlines + tuple(contours),
            extents=self.extents.include(np.vstack(contours)),
        )


def layout_glyphs(font: Font, run: ShapedRun, scale: float, segments: int) -> LayoutState:
    """Decodes every glyph of a shaped run at its pen position."""
    state = reduce(
        lambda s, glyph: s.add_glyph(font, glyph, scale, segments),
        run.glyphs,
        LayoutState(),
    )
    return LayoutState(
        outlines=state.outlines,
        extents=state.extents.with_pen_span(0.0, run.advance * scale),
    )


def text_outlines(font: Font, text: str, options: TextOptions | None = None) -> list[np.ndarray]:
    """Returns the aligned contours of text rendered in font.

    Every contour is an (N, 2) array with contour[0] == contour[-1]. Glyphs
    without outlines (such as spaces) only advance the pen. An empty list is
    returned when the text produces no contours.
    """
    if options is None:
        options = TextOptions()

    scale = options.size / font.ascender
    run = shape_text(font, text, options.kerning, options.spacing)
    log.debug(
        f"Laying out {len(run.glyphs)} glyphs for {text!r}: scale={scale} advance={run.advance}"
    )

    state = layout_glyphs(font, run, scale, options.segments)
    if not state.outlines:
        return []

    dx, dy = alignment_offset(state.extents, options.halign, options.valign)
    translation = np.array([dx, dy])
    return [contour + translation for contour in state.outlines]


def outlines_to_polygon(outlines: list[np.ndarray]) -> tuple[np.ndarray, list[np.ndarray]]:
    """Converts contours to OpenSCAD polygon(points, paths) form.

    TrueType outer contours wind clockwise, so each path is reversed.
    """
    if not outlines:
        return np.empty((0, 2)), []

    paths = []
    point_offset = 0
    for contour in outlines:
        num_points = len(contour)
        paths.append(np.arange(point_offset, point_offset + num_points)[::-1])
        point_offset += num_points
    return np.vstack(outlines), paths


def render_text(
    font: Font,
    text: str,
    size: float = 10,
    halign: str = "left",
    valign: str = "baseline",
    spacing: float = 1.0,
    kerning: bool = True,
    segments: int = DEFAULT_SEGMENTS,
) -> tuple[np.ndarray, list[np.ndarray]]:
    options = TextOptions(
        size=size,
        segments=segments,
        halign=halign,
        valign=valign,
        kerning=kerning,
        spacing=spacing,
    )
    return outlines_to_polygon(text_outlines(font, text, options))
