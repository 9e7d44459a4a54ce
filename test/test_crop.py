import unittest

import numpy as np
from PIL import Image

from padrender.config import RenderConfig
from padrender.data.layer_state import CropArea, LayerState, TextElement
from padrender.data.sources import load_raster
from padrender.effects.crop import DEFAULT_CROP_AREA, CropInteraction, apply_crop, commit_crop
from padrender.geometry import PercentRect


def _marked_image(size=(200, 200)):
    pixels = np.zeros((size[1], size[0], 4), dtype=np.uint8)
    pixels[..., 3] = 255
    pixels[20, 20] = (255, 0, 0, 255)
    return Image.fromarray(pixels)


class TestApplyCrop(unittest.TestCase):
    def test_exact_sub_rectangle(self):
        cropped = apply_crop(_marked_image(), CropArea(10, 10, 50, 50))
        self.assertEqual(cropped.size, (100, 100))
        self.assertEqual(cropped.getpixel((0, 0)), (255, 0, 0, 255))

    def test_none_is_identity(self):
        image = _marked_image()
        self.assertIs(apply_crop(image, None), image)

    def test_degenerate_area_is_clamped(self):
        cropped = apply_crop(_marked_image(), CropArea(99, 99, 0, 0))
        self.assertEqual(cropped.size, (20, 20))


class TestCommitCrop(unittest.TestCase):
    def test_rebases_state(self):
        text = TextElement(text="HI", x=25, y=75)
        state = LayerState(base_image=_marked_image(), crop_area=CropArea(10, 10, 50, 50), text_elements=(text,))
        committed = commit_crop(state)
        self.assertIsNone(committed.crop_area)
        self.assertTrue(committed.base_image.startswith("data:image/png;base64,"))
        self.assertEqual(load_raster(committed.base_image).size, (100, 100))
        # Element percentages keep their values and now refer to the cropped image.
        self.assertEqual(committed.text_elements, (text,))

    def test_without_crop_is_noop(self):
        state = LayerState(base_image="unused")
        self.assertIs(commit_crop(state), state)


class TestCropInteraction(unittest.TestCase):
    def test_hit_test_modes(self):
        crop = CropInteraction()
        self.assertEqual(crop.hit_test(10, 10), ("resize", "nw"))
        self.assertEqual(crop.hit_test(90, 50), ("resize", "e"))
        self.assertEqual(crop.hit_test(50, 50), ("move", None))
        self.assertEqual(crop.hit_test(2, 50), ("select", None))

    def test_move_keeps_size_and_stays_inside(self):
        crop = CropInteraction()
        self.assertEqual(crop.begin(50, 50), "move")
        area = crop.drag(80, 80)
        self.assertEqual(area, PercentRect(20, 20, 80, 80))
        area = crop.drag(-100, 50)
        self.assertEqual(area, PercentRect(0, 10, 80, 80))

    def test_resize_keeps_opposite_edge_and_minimum(self):
        crop = CropInteraction()
        self.assertEqual(crop.begin(90, 90), "resize")
        area = crop.drag(0, 0)
        self.assertEqual(area, PercentRect(10, 10, 20, 20))

    def test_edge_handle_moves_one_edge(self):
        crop = CropInteraction()
        crop.begin(10, 50)
        area = crop.drag(40, 70)
        self.assertEqual(area, PercentRect(40, 10, 50, 80))

    def test_select_new_rectangle(self):
        crop = CropInteraction()
        self.assertEqual(crop.begin(2, 95), "select")
        area = crop.drag(50, 60)
        self.assertEqual(area, PercentRect(2, 60, 48, 35))

    def test_release_clamps(self):
        crop = CropInteraction()
        crop.begin(2, 95)
        crop.drag(5, 97)
        area = crop.end()
        self.assertEqual(area, PercentRect(2, 80, 20, 20))
        self.assertIsNone(crop.mode)

    def test_keyboard(self):
        crop = CropInteraction()
        self.assertEqual(crop.handle_key("ArrowRight"), PercentRect(11, 10, 80, 80))
        self.assertEqual(crop.handle_key("ArrowDown", shift=True), PercentRect(11, 15, 80, 80))
        self.assertEqual(crop.handle_key("ArrowDown", shift=True), PercentRect(11, 20, 80, 80))
        self.assertEqual(crop.handle_key("Escape"), DEFAULT_CROP_AREA)
        self.assertEqual(crop.handle_key("Enter"), DEFAULT_CROP_AREA)

    def test_aspect_lock_on_corner(self):
        crop = CropInteraction(PercentRect(0, 0, 50, 50), aspect_ratio=2.0, image_size=(100, 100))
        crop.begin(50, 50)
        area = crop.drag(70, 55)
        self.assertAlmostEqual(area.width / area.height, 2.0)
        self.assertEqual((area.x, area.y), (0, 0))
        self.assertAlmostEqual(area.width, 70)

    def test_from_config(self):
        config = RenderConfig(interactive_min_crop_percent=30, crop_handle_radius_percent=5)
        crop = CropInteraction.from_config(config)
        self.assertEqual((crop.min_size, crop.handle_radius), (30, 5))
        self.assertEqual(crop.hit_test(14, 14), ("resize", "nw"))

    def test_aspect_lock_ignored_on_edges(self):
        crop = CropInteraction(PercentRect(0, 0, 50, 50), aspect_ratio=2.0, image_size=(100, 100))
        crop.begin(50, 25)
        area = crop.drag(60, 25)
        self.assertEqual(area, PercentRect(0, 0, 60, 50))


if __name__ == "__main__":
    unittest.main()
