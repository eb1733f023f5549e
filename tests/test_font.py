import unittest
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from anchorscad_lib.test_tools import iterable_assert

from scadtext.font import Font, FontParseError, GlyphLoadError
from scadtext.shaping import HarfBuzzShaper

from scadtext.text_render import TextOptions, text_outlines

from font_fixtures import (
    ADVANCES,
    COMPONENT_OFFSET,
    KERN_AV,
    SUNKEN_SHIFT,
    TRIANGLE,
    TYPO_ASCENDER,
    UNITS_PER_EM,
    build_font,
)


class TestFont(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.font = Font.from_bytes(build_font())

    def test_parse_rejects_garbage(self):
        for data in (b"", b"not a font at all", b"\0\1\0\0" + b"\0" * 8):
            with self.assertRaises(FontParseError):
                Font.from_bytes(data)

    def test_parse_error_is_value_error(self):
        self.assertTrue(issubclass(FontParseError, ValueError))

    def test_metrics(self):
        self.assertEqual(self.font.units_per_em, UNITS_PER_EM)
        self.assertEqual(self.font.num_glyphs, len(ADVANCES))
        self.assertEqual(self.font.ascender, TYPO_ASCENDER)

    def test_ascender_falls_back_to_bounding_box_top(self):
        font = Font.from_bytes(build_font(os2=False))
        self.assertEqual(font.ascender, 700)

    def test_ascender_falls_back_to_units_per_em(self):
        font = Font.from_bytes(build_font(os2=False, sunken=True))
        self.assertEqual(font.tt_font["head"].yMax, 700 + SUNKEN_SHIFT)
        self.assertEqual(font.ascender, UNITS_PER_EM)

        outlines = text_outlines(font, "AO", TextOptions(size=10, valign="center"))
        self.assertEqual(len(outlines), 3)
        for contour in outlines:
            self.assertTrue(np.all(np.isfinite(contour)))
        # Scale is size / unitsPerEm.
        self.assertAlmostEqual(np.ptp(outlines[0][:, 1]), 700 * 10 / UNITS_PER_EM)

    def test_ascender_shared_between_threads(self):
        font = Font.from_bytes(build_font())
        with ThreadPoolExecutor(max_workers=8) as pool:
            values = list(pool.map(lambda _: font.ascender, range(32)))
        self.assertEqual(set(values), {float(TYPO_ASCENDER)})

    def test_glyph_index(self):
        index_a = self.font.glyph_index(ord("A"))
        self.assertEqual(self.font.glyph_name(index_a), "A")
        self.assertEqual(self.font.glyph_index(ord("Z")), 0)
        self.assertEqual(self.font.glyph_index(0x1F600), 0)

    def test_glyph_outline(self):
        outline = self.font.glyph_outline(self.font.glyph_index(ord("A")))
        self.assertEqual(outline.ends, (3,))
        iterable_assert(self.assertAlmostEqual, outline.coordinates, TRIANGLE)
        self.assertTrue(np.all(outline.on_curve))

    def test_curved_glyph_outline(self):
        outline = self.font.glyph_outline(self.font.glyph_index(ord("O")))
        self.assertEqual(len(outline.ends), 2)
        self.assertFalse(np.all(outline.on_curve))
        self.assertTrue(outline.on_curve[0])

    def test_composite_glyph_outline(self):
        outline = self.font.glyph_outline(self.font.glyph_index(ord("W")))
        self.assertEqual(outline.ends, (3, 6))
        self.assertTrue(np.all(outline.on_curve))
        dx, dy = COMPONENT_OFFSET
        iterable_assert(
            self.assertAlmostEqual,
            outline.coordinates,
            TRIANGLE + [(x + dx, y + dy) for x, y in TRIANGLE],
        )

    def test_composite_glyph_text(self):
        scale = 10 / TYPO_ASCENDER
        for font in (self.font, Font.from_bytes(build_font(), shaping=False)):
            outlines = text_outlines(font, "W", TextOptions(size=10, kerning=False))
            self.assertEqual(len(outlines), 2)
            for contour in outlines:
                self.assertTrue(np.array_equal(contour[0], contour[-1]))
            iterable_assert(
                self.assertAlmostEqual,
                outlines[1] - outlines[0],
                [(COMPONENT_OFFSET[0] * scale, COMPONENT_OFFSET[1] * scale)] * 4,
            )

    def test_empty_glyph_outline(self):
        outline = self.font.glyph_outline(self.font.glyph_index(ord(" ")))
        self.assertTrue(outline.is_empty)

    def test_glyph_outline_out_of_range(self):
        with self.assertRaises(GlyphLoadError) as cm:
            self.font.glyph_outline(len(ADVANCES) + 10)
        self.assertEqual(cm.exception.index, len(ADVANCES) + 10)

    def test_advance_width(self):
        self.assertEqual(self.font.advance_width(self.font.glyph_index(ord("A"))), ADVANCES["A"])
        self.assertEqual(
            self.font.advance_width(self.font.glyph_index(ord(" "))), ADVANCES["space"]
        )
        self.assertEqual(self.font.advance_width(1000), 0)

    def test_kern(self):
        a = self.font.glyph_index(ord("A"))
        v = self.font.glyph_index(ord("V"))
        self.assertEqual(self.font.kern(a, v), KERN_AV)
        self.assertEqual(self.font.kern(v, a), 0)
        self.assertEqual(self.font.kern(a, 1000), 0)

    def test_kern_without_table(self):
        font = Font.from_bytes(build_font(kern=False))
        a = font.glyph_index(ord("A"))
        v = font.glyph_index(ord("V"))
        self.assertEqual(font.kern(a, v), 0)

    def test_shaper(self):
        self.assertIsInstance(self.font.shaper, HarfBuzzShaper)
        self.assertIsNone(Font.from_bytes(build_font(), shaping=False).shaper)


if __name__ == "__main__":
    unittest.main()
