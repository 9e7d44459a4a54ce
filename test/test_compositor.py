import unittest

import numpy as np
from PIL import Image

from padrender.config import RenderConfig
from padrender.data.layer_state import (
    Adjustments,
    CropArea,
    LayerState,
    LogoElement,
    Point,
    RGBEffect,
    TextElement,
)
from padrender.effects.crop import commit_crop
from padrender.errors import DecodeError
from padrender.render.canvas import PillowCanvas, build_canvas
from padrender.render.compositor import Compositor
from padrender.render.rgb import band_mask, band_thickness, rainbow_fill

RED = (255, 0, 0, 255)


def _dark_mask(image):
    pixels = np.asarray(image).astype(int)
    return (pixels[..., 0] < 64) & (pixels[..., 1] < 64) & (pixels[..., 2] < 64)


def _hello_state():
    return LayerState(
        base_image=Image.new("RGB", (400, 900), (255, 0, 0)),
        text_elements=(TextElement(text="HELLO", x=50, y=50, font_size=72, color="#000000"),),
        canvas_size=(400, 900),
    )


class TestCanvas(unittest.TestCase):
    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            build_canvas("skia", (10, 10))

    def test_draw_centered_rotation(self):
        canvas = PillowCanvas((50, 50))
        tile = Image.new("RGBA", (20, 4), RED)
        canvas.draw_centered(tile, (25, 25), rotation=90)
        alpha = np.asarray(canvas.snapshot())[..., 3]
        ys, xs = np.nonzero(alpha > 128)
        self.assertGreater(ys.max() - ys.min(), xs.max() - xs.min())

    def test_fill_mask_validation(self):
        canvas = PillowCanvas((10, 10))
        with self.assertRaises(ValueError):
            canvas.fill_mask(Image.new("L", (5, 5)), RED)


class TestCompositor(unittest.TestCase):
    def setUp(self):
        self.compositor = Compositor(RenderConfig())

    def _render(self, state, size=None):
        working = self.compositor.build_working_raster(state)
        return self.compositor.composite(working, state, size or state.canvas_size, design_size=state.canvas_size)

    def test_hello_scenario(self):
        image = self._render(_hello_state())
        self.assertEqual(image.size, (400, 900))
        self.assertEqual(image.getpixel((5, 5)), RED)
        self.assertEqual(image.getpixel((395, 895)), RED)
        dark = _dark_mask(image)
        ys, xs = np.nonzero(dark)
        self.assertTrue(len(xs) > 100)
        half_w = (xs.max() - xs.min()) / 2.0
        half_h = (ys.max() - ys.min()) / 2.0
        self.assertAlmostEqual(xs.mean(), 200, delta=half_w)
        self.assertAlmostEqual(ys.mean(), 450, delta=half_h)
        self.assertLessEqual(xs.min(), 200)
        self.assertGreaterEqual(xs.max(), 200)

    def test_inputs_not_mutated(self):
        state = _hello_state()
        before = state.base_image.tobytes()
        self._render(state)
        self.assertEqual(state.base_image.tobytes(), before)

    def test_missing_base_raises_decode_error(self):
        with self.assertRaises(DecodeError):
            self.compositor.build_working_raster(LayerState())
        with self.assertRaises(DecodeError):
            self.compositor.build_working_raster(LayerState(base_image=b"junk"))

    def test_zoom_and_position(self):
        state = LayerState(
            base_image=Image.new("RGB", (10, 10), (255, 0, 0)),
            zoom=0.5,
            position=Point(25, 0),
            canvas_size=(100, 100),
        )
        image = self._render(state)
        # Half-size base centred, then shifted right by 25 px: covers x 50..100, y 25..75.
        self.assertEqual(image.getpixel((75, 50)), RED)
        self.assertEqual(image.getpixel((25, 50)), (255, 255, 255, 255))
        self.assertEqual(image.getpixel((75, 10)), (255, 255, 255, 255))

    def test_adjustments_before_crop(self):
        pixels = np.zeros((100, 100, 3), dtype=np.uint8)
        pixels[:, 50:] = 255
        state = LayerState(
            base_image=Image.fromarray(pixels),
            adjustments=Adjustments(brightness=50),
            crop_area=CropArea(50, 0, 50, 100),
            canvas_size=(20, 20),
        )
        working = self.compositor.build_working_raster(state)
        self.assertEqual(working.size, (50, 100))
        self.assertTrue(np.all(np.abs(np.asarray(working)[..., :3].astype(int) - 127) <= 1))

    def test_layer_order(self):
        overlay = np.zeros((100, 200, 4), dtype=np.uint8)
        overlay[:, :100] = (0, 255, 0, 255)
        state = LayerState(
            base_image=Image.new("RGB", (20, 20), (0, 0, 255)),
            template_overlay=Image.fromarray(overlay),
            text_elements=(
                TextElement(text="A", x=25, y=50, font_size=60, color="#000000"),
                LogoElement(source=Image.new("RGB", (4, 4), (255, 255, 0)), x=75, y=50, width=10, height=20),
            ),
            canvas_size=(200, 100),
        )
        image = self._render(state)
        self.assertEqual(image.getpixel((10, 10)), (0, 255, 0, 255))
        self.assertEqual(image.getpixel((190, 10)), (0, 0, 255, 255))
        self.assertEqual(image.getpixel((150, 50)), (255, 255, 0, 255))
        self.assertTrue(_dark_mask(image)[:, :100].any())

    def test_later_elements_on_top(self):
        state = LayerState(
            base_image=Image.new("RGB", (10, 10), (255, 255, 255)),
            text_elements=(
                LogoElement(source=Image.new("RGB", (4, 4), (255, 0, 0)), x=50, y=50, width=50, height=50),
                LogoElement(source=Image.new("RGB", (4, 4), (0, 0, 255)), x=50, y=50, width=20, height=20),
            ),
            canvas_size=(100, 100),
        )
        image = self._render(state)
        self.assertEqual(image.getpixel((50, 50)), (0, 0, 255, 255))
        self.assertEqual(image.getpixel((30, 30)), RED)

    def test_text_order_decides_overlap(self):
        red = TextElement(text="HELLO", x=50, y=50, font_size=60, color="#ff0000")
        blue = TextElement(text="HELLO", x=50, y=50, font_size=60, color="#0000ff")
        base = LayerState(base_image=Image.new("RGB", (10, 10), (255, 255, 255)), canvas_size=(300, 100))

        def pixels(*elements):
            return np.asarray(self._render(base.replace(text_elements=elements)))

        overlap = np.all(pixels(red) == RED, axis=-1) & np.all(pixels(blue) == (0, 0, 255, 255), axis=-1)
        self.assertTrue(overlap.any())
        self.assertTrue(np.all(pixels(red, blue)[overlap] == (0, 0, 255, 255)))
        self.assertTrue(np.all(pixels(blue, red)[overlap] == RED))

    def test_undecodable_percent_encoded_overlay_is_skipped(self):
        state = _hello_state().replace(template_overlay="data:image/png,%89PNG%0D%0A%FF%FE%00")
        with self.assertLogs("padrender.render.compositor", level="WARNING"):
            image = self._render(state)
        self.assertEqual(image.getpixel((5, 5)), RED)

    def test_broken_overlay_is_skipped(self):
        state = _hello_state().replace(template_overlay="/no/such/overlay.png")
        with self.assertLogs("padrender.render.compositor", level="WARNING"):
            image = self._render(state)
        self.assertEqual(image.getpixel((5, 5)), RED)
        self.assertTrue(_dark_mask(image).any())

    def test_broken_font_and_logo_are_skipped(self):
        state = _hello_state().replace(
            text_elements=(
                TextElement(text="BAD", font_family="/no/such/font.ttf"),
                LogoElement(source="/no/such/logo.png"),
                TextElement(text="HELLO", font_size=72),
            )
        )
        with self.assertLogs("padrender.render.compositor", level="WARNING") as logs:
            image = self._render(state)
        self.assertEqual(len(logs.records), 2)
        self.assertTrue(_dark_mask(image).any())

    def test_resolution_independence(self):
        state = _hello_state()
        full = self._render(state, (400, 900))
        half = self._render(state, (200, 450))
        ys_f, xs_f = np.nonzero(_dark_mask(full))
        ys_h, xs_h = np.nonzero(_dark_mask(half))
        self.assertAlmostEqual(xs_f.mean() / 400, xs_h.mean() / 200, delta=0.02)
        self.assertAlmostEqual(ys_f.mean() / 900, ys_h.mean() / 450, delta=0.02)
        width_f = (xs_f.max() - xs_f.min()) / 400
        width_h = (xs_h.max() - xs_h.min()) / 200
        self.assertAlmostEqual(width_f, width_h, delta=0.05)

    def test_crop_rebase_policy(self):
        pixels = np.zeros((200, 200, 3), dtype=np.uint8)
        pixels[:, :100] = (0, 0, 255)
        pixels[:, 100:] = (255, 0, 0)
        text = TextElement(text="HELLO", x=50, y=50, font_size=30)
        state = LayerState(
            base_image=Image.fromarray(pixels),
            crop_area=CropArea(50, 0, 50, 100),
            text_elements=(text,),
            canvas_size=(200, 200),
        )
        before = self._render(state)
        committed = commit_crop(state)
        after = self._render(committed)
        self.assertEqual(committed.text_elements, (text,))
        self.assertEqual(before.tobytes(), after.tobytes())
        # The cropped raster fills the canvas, so no blue remains and the text stays centred.
        self.assertEqual(after.getpixel((5, 5)), RED)
        ys, xs = np.nonzero(_dark_mask(after))
        self.assertAlmostEqual(xs.mean(), 100, delta=(xs.max() - xs.min()) / 2.0)


class TestRGBBand(unittest.TestCase):
    def setUp(self):
        self.compositor = Compositor(RenderConfig())

    def _render(self, state):
        working = self.compositor.build_working_raster(state)
        return self.compositor.composite(working, state, state.canvas_size)

    def test_static_band(self):
        state = LayerState(
            base_image=Image.new("RGB", (10, 10), (255, 255, 255)),
            rgb_effect=RGBEffect("static", "#00ff00", 100),
            product_type="rgb",
            canvas_size=(900, 400),
        )
        image = self._render(state)
        self.assertEqual(band_thickness((900, 400)), 18)
        self.assertEqual(image.getpixel((5, 200)), (0, 255, 0, 255))
        self.assertEqual(image.getpixel((450, 17)), (0, 255, 0, 255))
        self.assertEqual(image.getpixel((450, 18)), (255, 255, 255, 255))
        self.assertEqual(image.getpixel((450, 200)), (255, 255, 255, 255))

    def test_brightness_is_band_opacity(self):
        state = LayerState(
            base_image=Image.new("RGB", (10, 10), (0, 0, 0)),
            rgb_effect=RGBEffect("breathing", "#ffffff", 50),
            product_type="rgb",
            canvas_size=(100, 100),
        )
        self.assertAlmostEqual(self._render(state).getpixel((0, 50))[0], 128, delta=1)

    def test_band_drawn_last(self):
        state = LayerState(
            base_image=Image.new("RGB", (10, 10), (255, 255, 255)),
            text_elements=(LogoElement(source=Image.new("RGB", (2, 2), (0, 0, 0)), x=0, y=0, width=20, height=20),),
            rgb_effect=RGBEffect("static", "#ff0000", 100),
            product_type="rgb",
            canvas_size=(100, 100),
        )
        self.assertEqual(self._render(state).getpixel((1, 1)), RED)

    def test_not_drawn_for_standard_products(self):
        state = LayerState(
            base_image=Image.new("RGB", (10, 10), (255, 255, 255)),
            rgb_effect=RGBEffect("static", "#00ff00", 100),
            canvas_size=(100, 100),
        )
        self.assertEqual(self._render(state).getpixel((0, 0)), (255, 255, 255, 255))

    def test_rainbow(self):
        fill = np.asarray(rainbow_fill((100, 50)))
        mask = np.asarray(band_mask((100, 50), 3)) > 0
        self.assertFalse(mask[25, 50])
        self.assertTrue(mask[0, 50] and mask[25, 0])
        hues = {tuple(fill[0, x, :3]) for x in range(0, 100, 10)}
        self.assertGreater(len(hues), 5)
        self.assertEqual(tuple(fill[0, 0, :3]), (255, 0, 0))


if __name__ == "__main__":
    unittest.main()
