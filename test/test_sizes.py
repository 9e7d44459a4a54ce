import unittest

from padrender.data.filters import FILTER_IDS, get_filter_chain, step_to_css
from padrender.data.sizes import PRODUCT_SIZES, canvas_size_for


class TestProductSizes(unittest.TestCase):
    def test_table(self):
        self.assertEqual(len(PRODUCT_SIZES), 12)
        for name, size in PRODUCT_SIZES.items():
            self.assertGreaterEqual(size.width_mm, size.height_mm, name)

    def test_canvas_size_for(self):
        self.assertEqual(canvas_size_for("400x900"), (900, 400))
        self.assertEqual(canvas_size_for("300x350", px_per_mm=3.0), (1050, 900))

    def test_unknown_size(self):
        with self.assertRaises(ValueError):
            canvas_size_for("1x1")


class TestFilterPresets(unittest.TestCase):
    def test_presets(self):
        self.assertEqual(FILTER_IDS[0], "none")
        self.assertEqual(len(FILTER_IDS), 10)
        self.assertEqual(get_filter_chain("none"), ())
        self.assertEqual(get_filter_chain("vintage"), (("sepia", 0.5), ("contrast", 1.2), ("brightness", 0.9)))

    def test_unknown_preset(self):
        with self.assertRaises(ValueError):
            get_filter_chain("lomo")

    def test_step_to_css(self):
        self.assertEqual(step_to_css(("blur", 1.5)), "blur(1.5px)")
        self.assertEqual(step_to_css(("opacity", 0.8)), "opacity(80%)")


if __name__ == "__main__":
    unittest.main()
