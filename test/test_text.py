import unittest

import numpy as np

from padrender.data.layer_state import Gradient, Outline, Shadow, TextElement
from padrender.errors import DecodeError
from padrender.render.text import FontResolver, gradient_fill, render_text_tile


def _alpha(tile):
    return np.asarray(tile)[..., 3].astype(int)


class TestFontResolver(unittest.TestCase):
    def test_unknown_family_falls_back(self):
        resolved = FontResolver().resolve("No Such Family", 20)
        self.assertIsNotNone(resolved.font)

    def test_styles_synthesised_without_styled_face(self):
        resolved = FontResolver().resolve("No Such Family", 20, bold=True, italic=True)
        self.assertTrue(resolved.synthetic_bold)
        self.assertTrue(resolved.synthetic_italic)

    def test_cached(self):
        resolver = FontResolver()
        self.assertIs(resolver.resolve("No Such Family", 20), resolver.resolve("No Such Family", 20))

    def test_missing_font_file(self):
        with self.assertRaises(DecodeError):
            FontResolver().resolve("/no/such/font.ttf", 20)


class TestRenderTextTile(unittest.TestCase):
    def setUp(self):
        self.resolver = FontResolver()

    def test_nothing_to_draw(self):
        for element in (
            TextElement(text=""),
            TextElement(text="   "),
            TextElement(text="A", visible=False),
            TextElement(text="A", opacity=0),
        ):
            self.assertIsNone(render_text_tile(element, self.resolver))

    def test_ink_is_centred(self):
        tile = render_text_tile(TextElement(text="HELLO", font_size=40), self.resolver)
        ys, xs = np.nonzero(_alpha(tile) > 128)
        self.assertTrue(len(xs) > 0)
        center_x = (xs.min() + xs.max()) / 2.0
        center_y = (ys.min() + ys.max()) / 2.0
        self.assertAlmostEqual(center_x, tile.width / 2.0, delta=3)
        self.assertAlmostEqual(center_y, tile.height / 2.0, delta=3)

    def test_fill_colour(self):
        tile = render_text_tile(TextElement(text="HELLO", font_size=40, color="#00ff00"), self.resolver)
        pixels = np.asarray(tile)
        solid = pixels[pixels[..., 3] == 255]
        self.assertTrue(len(solid) > 0)
        self.assertTrue(np.all(solid[:, :3] == (0, 255, 0)))

    def test_opacity_scales_alpha(self):
        tile = render_text_tile(TextElement(text="HELLO", font_size=40, opacity=50), self.resolver)
        self.assertAlmostEqual(_alpha(tile).max(), 128, delta=1)

    def test_outline_widens_coverage(self):
        plain = render_text_tile(TextElement(text="HELLO", font_size=40), self.resolver)
        outlined = render_text_tile(
            TextElement(text="HELLO", font_size=40, outline=Outline(True, "#ff0000", 6)), self.resolver
        )
        self.assertGreater((_alpha(outlined) > 0).sum(), (_alpha(plain) > 0).sum())
        pixels = np.asarray(outlined)
        red = (pixels[..., 0] == 255) & (pixels[..., 1] == 0) & (pixels[..., 3] == 255)
        self.assertTrue(red.any())

    def test_shadow_drawn_beneath(self):
        element = TextElement(
            text="HELLO", font_size=40, color="#ffffff", shadow=Shadow(True, "#0000ff", 0, 6, 6)
        )
        pixels = np.asarray(render_text_tile(element, self.resolver))
        blue = (pixels[..., 2] == 255) & (pixels[..., 0] == 0) & (pixels[..., 3] == 255)
        white = (pixels[..., :3] == 255).all(-1) & (pixels[..., 3] == 255)
        self.assertTrue(blue.any())
        self.assertTrue(white.any())

    def test_horizontal_gradient(self):
        element = TextElement(
            text="MMMMMM", font_size=40, gradient=Gradient(True, "#ff0000", "#0000ff", "horizontal")
        )
        pixels = np.asarray(render_text_tile(element, self.resolver)).astype(int)
        ys, xs = np.nonzero(pixels[..., 3] == 255)
        left = pixels[ys[xs < np.percentile(xs, 20)], xs[xs < np.percentile(xs, 20)]]
        right = pixels[ys[xs > np.percentile(xs, 80)], xs[xs > np.percentile(xs, 80)]]
        self.assertGreater(left[:, 0].mean(), right[:, 0].mean())
        self.assertLess(left[:, 2].mean(), right[:, 2].mean())

    def test_scale_grows_tile(self):
        element = TextElement(text="HELLO", font_size=20)
        small = render_text_tile(element, self.resolver, scale=1.0)
        large = render_text_tile(element, self.resolver, scale=2.0)
        self.assertGreater(large.width, small.width * 1.5)

    def test_synthetic_styles_render(self):
        element = TextElement(text="HELLO", font_family="No Such Family", font_size=30, bold=True, italic=True)
        tile = render_text_tile(element, self.resolver)
        self.assertTrue((_alpha(tile) > 0).any())

    def test_multiline(self):
        single = render_text_tile(TextElement(text="HELLO", font_size=30), self.resolver)
        double = render_text_tile(TextElement(text="HELLO\nWORLD", font_size=30), self.resolver)
        self.assertGreater(double.height, single.height)


class TestGradientFill(unittest.TestCase):
    def test_directions(self):
        box = (0, 0, 10, 10)
        horizontal = np.asarray(gradient_fill((11, 11), box, (0, 0, 0, 255), (255, 255, 255, 255), "horizontal"))
        self.assertEqual(horizontal[5, 0, 0], 0)
        self.assertEqual(horizontal[5, 10, 0], 255)
        self.assertEqual(horizontal[0, 5, 0], horizontal[10, 5, 0])
        vertical = np.asarray(gradient_fill((11, 11), box, (0, 0, 0, 255), (255, 255, 255, 255), "vertical"))
        self.assertEqual(vertical[0, 5, 0], 0)
        self.assertEqual(vertical[10, 5, 0], 255)
        diagonal = np.asarray(gradient_fill((11, 11), box, (0, 0, 0, 255), (255, 255, 255, 255), "diagonal"))
        self.assertEqual(diagonal[0, 0, 0], 0)
        self.assertEqual(diagonal[10, 10, 0], 255)


if __name__ == "__main__":
    unittest.main()
