from scadtext.align import Extents, HAlign, VAlign, alignment_offset
from scadtext.curves import flatten_quadratic
from scadtext.font import Font, FontParseError, GlyphLoadError
from scadtext.glyph_decoder import GlyphOutline, decode_contour, decode_glyph
from scadtext.sfnt import read_typo_ascender
from scadtext.shaping import (
    HarfBuzzShaper,
    PositionedGlyph,
    ShapedRun,
    Shaper,
    SimpleShaper,
    shape_text,
)
from scadtext.text_render import (
    TextOptions,
    outlines_to_polygon,
    render_text,
    text_outlines,
)
