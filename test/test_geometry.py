import math
import unittest

from padrender.errors import InvalidGeometryError
from padrender.geometry import (
    PercentRect,
    PixelBox,
    base_image_box,
    centered_box,
    clamp_crop_area,
    percent_to_px,
    px_to_percent,
    rotate_point,
    validate_canvas_size,
)


class TestPercentConversion(unittest.TestCase):
    def test_center_of_portrait_canvas(self):
        self.assertEqual(percent_to_px(50, 50, (400, 900)), (200.0, 450.0))

    def test_inverse(self):
        x, y = px_to_percent(*percent_to_px(12.5, 87.5, (640, 480)), (640, 480))
        self.assertAlmostEqual(x, 12.5)
        self.assertAlmostEqual(y, 87.5)

    def test_out_of_range_percent_is_allowed(self):
        self.assertEqual(percent_to_px(-10, 150, (100, 200)), (-10.0, 300.0))

    def test_non_finite_raises(self):
        with self.assertRaises(InvalidGeometryError):
            percent_to_px(math.nan, 0, (100, 100))
        with self.assertRaises(InvalidGeometryError):
            px_to_percent(0, math.inf, (100, 100))

    def test_invalid_geometry_is_value_error(self):
        with self.assertRaises(ValueError):
            validate_canvas_size((0, 10))

    def test_validate_canvas_size_rounds(self):
        self.assertEqual(validate_canvas_size((99.6, 10.2)), (100, 10))


class TestRotatePoint(unittest.TestCase):
    def test_quarter_turn_is_clockwise_on_screen(self):
        x, y = rotate_point((10.0, 0.0), (0.0, 0.0), 90)
        self.assertAlmostEqual(x, 0.0)
        self.assertAlmostEqual(y, 10.0)

    def test_rotation_about_anchor(self):
        x, y = rotate_point((15.0, 5.0), (5.0, 5.0), 180)
        self.assertAlmostEqual(x, -5.0)
        self.assertAlmostEqual(y, 5.0)


class TestBoxes(unittest.TestCase):
    def test_percent_rect_to_pixels_and_back(self):
        rect = PercentRect(10, 20, 50, 25)
        box = rect.to_pixels((200, 400))
        self.assertEqual(box, PixelBox(20.0, 80.0, 100.0, 100.0))
        back = PercentRect.from_pixels(box, (200, 400))
        self.assertAlmostEqual(back.x, 10)
        self.assertAlmostEqual(back.height, 25)

    def test_rounded_never_empty(self):
        self.assertEqual(PixelBox(3.2, 4.4, 0.1, 0.0).rounded(), (3, 4, 4, 5))

    def test_centered_box(self):
        box = centered_box(50, 50, 20, 10, (400, 200))
        self.assertEqual(box.center, (200.0, 100.0))
        self.assertEqual((box.width, box.height), (80.0, 20.0))

    def test_contains(self):
        rect = PercentRect(10, 10, 80, 80)
        self.assertTrue(rect.contains(50, 50))
        self.assertFalse(rect.contains(5, 50))


class TestBaseImageBox(unittest.TestCase):
    def test_stretch_fills_canvas(self):
        box = base_image_box((400, 900), (37, 12))
        self.assertEqual(box, PixelBox(0.0, 0.0, 400.0, 900.0))

    def test_zoom_scales_about_center(self):
        box = base_image_box((100, 50), (10, 10), zoom=2.0)
        self.assertEqual(box, PixelBox(-50.0, -25.0, 200.0, 100.0))
        self.assertEqual(box.center, (50.0, 25.0))

    def test_position_translates_in_percent(self):
        box = base_image_box((200, 100), (10, 10), position=(10, -20))
        self.assertEqual((box.left, box.top), (20.0, -20.0))

    def test_cover_keeps_aspect(self):
        box = base_image_box((100, 100), (200, 100), fit="cover")
        self.assertEqual(box, PixelBox(-50.0, 0.0, 200.0, 100.0))

    def test_invalid_inputs(self):
        with self.assertRaises(InvalidGeometryError):
            base_image_box((100, 100), (10, 10), zoom=0)
        with self.assertRaises(InvalidGeometryError):
            base_image_box((100, 100), (10, 10), position=(math.nan, 0))
        with self.assertRaises(ValueError):
            base_image_box((100, 100), (10, 10), fit="contain")


class TestClampCropArea(unittest.TestCase):
    def test_minimum_size_enforced(self):
        rect = clamp_crop_area(PercentRect(95, 95, 2, 2), min_size=10)
        self.assertEqual(rect, PercentRect(90, 90, 10, 10))

    def test_kept_inside_unit_square(self):
        rect = clamp_crop_area(PercentRect(-5, 30, 120, 90))
        self.assertEqual(rect, PercentRect(0, 10, 100, 90))

    def test_valid_area_unchanged(self):
        rect = PercentRect(10, 10, 50, 50)
        self.assertEqual(clamp_crop_area(rect), rect)

    def test_non_finite_rejected(self):
        with self.assertRaises(InvalidGeometryError):
            clamp_crop_area(PercentRect(0, 0, math.inf, 10))


if __name__ == "__main__":
    unittest.main()
