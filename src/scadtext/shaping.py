"""
Text shaping: turning a string into positioned glyphs.

Two shapers implement the same `Shaper` interface:

1. HarfBuzzShaper:
   - Delegates the whole run to HarfBuzz (via uharfbuzz), which handles
     complex scripts, ligatures, mark positioning and GPOS/kern kerning.

2. SimpleShaper:
   - One glyph per codepoint, advance widths from hmtx and pair kerning from
     the legacy kern table. Always available and used when a font has no
     HarfBuzz face.

Both report positions and advances in font units with the spacing multiplier
already applied to advances (and, for SimpleShaper, to kerning).
"""

import logging
import sys
from typing import Protocol

from datatrees import datatree, dtfield

try:
    import uharfbuzz as hb
except ImportError:
    print("ERROR: uharfbuzz library not found. Falling back to simple shaping.", file=sys.stderr)
    print("Please install it: pip install uharfbuzz", file=sys.stderr)
    hb = None

log = logging.getLogger(__name__)


@datatree(frozen=True)
class PositionedGlyph:
    index: int = dtfield(doc="Glyph index in the font.")
    pen_x: float = dtfield(doc="Pen X (font units) at which the glyph origin is placed.")
    advance: float = dtfield(default=0.0, doc="Advance consumed by the glyph, spacing applied.")


@datatree(frozen=True)
class ShapedRun:
    glyphs: tuple = dtfield(default=(), doc="PositionedGlyph sequence in visual order.")
    advance: float = dtfield(default=0.0, doc="Total pen advance of the run, font units.")


class Shaper(Protocol):
    def shape(self, text: str, kerning: bool, spacing: float) -> ShapedRun: ...


class SimpleShaper:
    """Codepoint-by-codepoint layout using hmtx advances and legacy kern pairs."""

    def __init__(self, font):
        self.font = font

    def shape(self, text: str, kerning: bool, spacing: float) -> ShapedRun:
        glyphs = []
        pen_x = 0.0
        prev = None
        for char in text:
            index = self.font.glyph_index(ord(char))
            if kerning and prev is not None:
                pen_x += self.font.kern(prev, index) * spacing
            advance = self.font.advance_width(index) * spacing
            glyphs.append(PositionedGlyph(index=index, pen_x=pen_x, advance=advance))
            pen_x += advance
            prev = index
        return ShapedRun(glyphs=tuple(glyphs), advance=pen_x)


class HarfBuzzShaper:
    """Shapes runs with HarfBuzz at a scale of one unit per font unit."""

    def __init__(self, font_data: bytes, units_per_em: int):
        if hb is None:
            raise RuntimeError("HarfBuzz (uharfbuzz) is required for HarfBuzzShaper")
        face = hb.Face(font_data)
        self.hb_font = hb.Font(face)
        # Positions come back in font units.
        self.hb_font.scale = (units_per_em, units_per_em)

    def shape(self, text: str, kerning: bool, spacing: float) -> ShapedRun:
        if not text:
            return ShapedRun()

        buf = hb.Buffer()
        buf.add_str(text)
        buf.guess_segment_properties()

        # Keep HarfBuzz's default features, only switching kerning off on request.
        features = {} if kerning else {"kern": False}
        hb.shape(self.hb_font, buf, features)

        glyphs = []
        pen_x = 0.0
        for info, pos in zip(buf.glyph_infos, buf.glyph_positions):
            advance = pos.x_advance * spacing
            log.debug(
                f"Shaped GID={info.codepoint} Cluster={info.cluster} "
                f"Adv={pos.x_advance} Off=({pos.x_offset},{pos.y_offset})"
            )
            # Offsets are placement within the glyph cell and are not scaled by spacing.
            glyphs.append(
                PositionedGlyph(index=info.codepoint, pen_x=pen_x + pos.x_offset, advance=advance)
            )
            pen_x += advance
        return ShapedRun(glyphs=tuple(glyphs), advance=pen_x)


def shape_text(font, text: str, kerning: bool = True, spacing: float = 1.0) -> ShapedRun:
    """Shapes text with the font's shaper, or SimpleShaper if it has none."""
    shaper = font.shaper if font.shaper is not None else SimpleShaper(font)
    return shaper.shape(text, kerning, spacing)
