"""
Tests for category mapping and validation
"""

import unittest

from services.category import CategoryService
from utils.stock_categories import CATEGORY_ALIASES, STOCK_CATEGORIES


class TestNameMapping(unittest.TestCase):
    """Test fuzzy name to id matching"""

    def setUp(self):
        self.service = CategoryService()

    def test_exact_names(self):
        """Every official name maps to its own id, case-insensitively"""
        for category_id, name in STOCK_CATEGORIES.items():
            self.assertEqual(self.service.map_name_to_id(name), category_id)
            self.assertEqual(self.service.map_name_to_id(name.upper()), category_id)

        self.assertEqual(self.service.map_name_to_id("  animals  "), 1)

    def test_aliases(self):
        self.assertEqual(self.service.map_name_to_id("pets"), 1)
        self.assertEqual(self.service.map_name_to_id("Wine"), 4)
        self.assertEqual(self.service.map_name_to_id("tech"), 19)
        self.assertEqual(self.service.map_name_to_id("vacation"), 21)

    def test_aliases_point_at_valid_ids(self):
        for alias, category_id in CATEGORY_ALIASES.items():
            self.assertIn(category_id, STOCK_CATEGORIES, alias)

    def test_partial_prefix(self):
        self.assertEqual(self.service.map_name_to_id("Build"), 2)
        self.assertEqual(self.service.map_name_to_id("archit"), 2)
        self.assertEqual(self.service.map_name_to_id("sci"), 16)

    def test_substring(self):
        self.assertEqual(self.service.map_name_to_id("Beautiful Landscape Photography"), 11)

    def test_unknown_falls_back_to_default(self):
        self.assertEqual(self.service.map_name_to_id("xyzzy"), 1)
        self.assertEqual(self.service.map_name_to_id(""), 1)
        self.assertEqual(self.service.map_name_to_id("   "), 1)


class TestCategoryIds(unittest.TestCase):
    """Test id validation and coercion"""

    def setUp(self):
        self.service = CategoryService()

    def test_validate_id(self):
        self.assertTrue(self.service.validate_id(1))
        self.assertTrue(self.service.validate_id(21))
        self.assertTrue(self.service.validate_id("5"))
        self.assertFalse(self.service.validate_id(0))
        self.assertFalse(self.service.validate_id(22))
        self.assertFalse(self.service.validate_id("abc"))
        self.assertFalse(self.service.validate_id(3.5))

    def test_get_name_by_id(self):
        self.assertEqual(self.service.get_name_by_id(3), "Business")
        self.assertIsNone(self.service.get_name_by_id(99))

    def test_get_all_categories_is_a_copy(self):
        categories = self.service.get_all_categories()
        self.assertEqual(len(categories), 21)
        categories[1] = "Changed"
        self.assertEqual(self.service.get_name_by_id(1), "Animals")

    def test_to_valid_category_id(self):
        cases = [
            (7, 7),
            (7.0, 7),
            ("7", 7),
            (" 12 ", 12),
            ("25", 1),
            (0, 1),
            (-3, 1),
            ("Food", 7),
            ("plants", 14),
            (True, 1),
            (None, 1),
        ]
        for value, expected in cases:
            with self.subTest(value=value):
                self.assertEqual(self.service.to_valid_category_id(value), expected)


if __name__ == "__main__":
    unittest.main()
