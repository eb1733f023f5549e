"""
Font handle: parsed TrueType data plus the metrics text layout needs.

fontTools does the table parsing. The handle exposes glyph lookup, raw glyph
outlines, advance widths, legacy kern pairs and the ascender used to size text,
along with an optional HarfBuzz shaper built from the same bytes.
"""

import io
import logging
from functools import cached_property

import numpy as np
from fontTools.ttLib import TTFont

from scadtext.glyph_decoder import GlyphOutline
from scadtext.sfnt import read_typo_ascender
from scadtext.shaping import HarfBuzzShaper

log = logging.getLogger(__name__)

REQUIRED_TABLES = ("head", "hmtx", "cmap", "glyf")

# Bit 0 of a glyf point flag marks an on-curve point.
FLAG_ON_CURVE = 0x01


class FontParseError(ValueError):
    """The supplied bytes are not a usable TrueType-outline font."""


class GlyphLoadError(LookupError):
    """A glyph's outline could not be loaded."""

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Cannot load glyph {index}: {reason}")


class Font:
    """
    Read-only view of a TrueType font.

    Create with Font.from_bytes(). Instances may be shared between threads:
    the only state written after construction is the cached ascender, whose
    value depends only on the font bytes. cached_property publishes it with a
    single assignment into the instance __dict__, so concurrent first readers
    at worst compute it more than once and always observe a complete value.
    """

    def __init__(self, data: bytes, tt_font: TTFont, shaper=None):
        self.data = data
        self.tt_font = tt_font
        self.shaper = shaper
        self._glyf = tt_font["glyf"]
        self._hmtx = tt_font["hmtx"]
        self._cmap = tt_font.getBestCmap() or {}
        self._glyph_order = tt_font.getGlyphOrder()

    @classmethod
    def from_bytes(cls, data: bytes, shaping: bool = True) -> "Font":
        """Parses font bytes.

        Args:
            data: Contents of a .ttf (or TrueType-flavoured .otf) file.
            shaping: Attach a HarfBuzz shaper when uharfbuzz can load the font.

        Raises:
            FontParseError: If the bytes cannot be parsed or the font has no
                TrueType outlines.
        """
        data = bytes(data)
        try:
            tt_font = TTFont(io.BytesIO(data))
            missing = [tag for tag in REQUIRED_TABLES if tag not in tt_font]
            if missing:
                raise FontParseError(f"Font is missing required tables: {', '.join(missing)}")
            # Force decompilation so damaged tables fail here rather than mid-layout.
            for tag in REQUIRED_TABLES:
                tt_font[tag]
        except FontParseError:
            raise
        except Exception as e:
            raise FontParseError(f"Failed to parse font: {e}") from e

        shaper = None
        if shaping:
            try:
                shaper = HarfBuzzShaper(data, tt_font["head"].unitsPerEm)
            except Exception as e:
                log.warning(f"HarfBuzz unavailable for this font, using simple shaping: {e}")
        return cls(data, tt_font, shaper)

    @property
    def units_per_em(self) -> int:
        return self.tt_font["head"].unitsPerEm

    @property
    def num_glyphs(self) -> int:
        return len(self._glyph_order)

    @cached_property
    def ascender(self) -> float:
        """Baseline-to-top distance in font units used to size text.

        OS/2 sTypoAscender when present and positive, else the font bounding
        box top, else unitsPerEm. Always positive.
        """
        typo_ascender = read_typo_ascender(self.data)
        if typo_ascender is not None:
            return float(typo_ascender)
        y_max = self.tt_font["head"].yMax
        if y_max > 0:
            log.debug(f"No OS/2 typo ascender, using head.yMax={y_max}")
            return float(y_max)
        log.debug(f"No usable ascender, using unitsPerEm={self.units_per_em}")
        return float(self.units_per_em)

    def glyph_index(self, codepoint: int) -> int:
        """Glyph index for codepoint; 0 (.notdef) if the font does not map it."""
        glyph_name = self._cmap.get(codepoint)
        if glyph_name is None:
            return 0
        return self.tt_font.getGlyphID(glyph_name)

    def glyph_name(self, index: int) -> str:
        if not 0 <= index < len(self._glyph_order):
            raise GlyphLoadError(index, f"index out of range (font has {self.num_glyphs} glyphs)")
        return self._glyph_order[index]

    def glyph_outline(self, index: int) -> GlyphOutline:
        """Raw point stream and contour boundaries of a glyph, in font units.

        Composite glyphs are resolved into their components' points.

        Raises:
            GlyphLoadError: If index is out of range or the glyph data is bad.
        """
        glyph_name = self.glyph_name(index)
        try:
            glyph = self._glyf[glyph_name]
            if glyph.numberOfContours == 0:
                return GlyphOutline.empty()
            coords, end_pts, flags = glyph.getCoordinates(self._glyf)
        except Exception as e:
            raise GlyphLoadError(index, str(e)) from e

        # glyf end points are inclusive.
        return GlyphOutline(
            coordinates=np.array(list(coords), dtype=float).reshape(-1, 2),
            on_curve=np.array([f & FLAG_ON_CURVE for f in flags], dtype=bool),
            ends=tuple(e + 1 for e in end_pts),
        )

    def advance_width(self, index: int) -> int:
        """Horizontal advance in font units; 0 for an unknown glyph."""
        if not 0 <= index < len(self._glyph_order):
            return 0
        metrics = self._hmtx.metrics.get(self._glyph_order[index])
        return metrics[0] if metrics else 0

    def kern(self, prev_index: int, index: int) -> int:
        """Legacy kern table adjustment between two glyphs; 0 if none."""
        if "kern" not in self.tt_font:
            return 0
        if not (0 <= prev_index < self.num_glyphs and 0 <= index < self.num_glyphs):
            return 0
        pair = (self._glyph_order[prev_index], self._glyph_order[index])
        value = 0
        for subtable in getattr(self.tt_font["kern"], "kernTables", []):
            # Only OpenType-style format 0 subtables with the horizontal coverage bit.
            if getattr(subtable, "apple", False) or getattr(subtable, "format", None) != 0:
                continue
            if not subtable.coverage & 0x01:
                continue
            value += subtable.kernTable.get(pair, 0)
        return value
