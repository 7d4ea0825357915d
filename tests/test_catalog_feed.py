# --- path/bootstrap (keep this at the very top) ---
from pathlib import Path
import sys

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
# --- end path/bootstrap ---

import json
import shutil
import tempfile
import unittest
from datetime import date

from catalog import Catalog
from catalog_feed import CSVCatalogAdapter, JSONCatalogAdapter, load_catalog_feed, select_adapter
from errors import InvalidArgument

CSV_FEED = """sku,name,price,stock,expires,weight
C1,Cheese,300,70,2028-12-31,0.5
,Soap,50,10,,
,,10,1,,
B1,Bad,abc,1,,
E1,Late,10,1,not-a-date,
"""


class TestCatalogFeed(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp, ignore_errors=True)
        self.catalog = Catalog()

    def write(self, name, text):
        path = Path(self.tmp) / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    def test_csv_feed_skips_invalid_rows(self):
        path = self.write("feed.csv", CSV_FEED)
        with self.assertLogs("catalog_feed", level="WARNING") as cm:
            inserted, updated = load_catalog_feed(path, self.catalog)
        self.assertEqual((inserted, updated), (2, 0))
        self.assertEqual(len([line for line in cm.output if "Skipping" in line]), 3)

        cheese = self.catalog.get_product("C1")
        self.assertEqual(cheese.unit_price, 300)
        self.assertEqual(cheese.quantity, 70)
        self.assertEqual(cheese.expiration_date, date(2028, 12, 31))
        self.assertEqual(cheese.weight, 0.5)

        soap = self.catalog.get_product_by_name("Soap")
        self.assertFalse(soap.is_perishable)
        self.assertFalse(soap.is_shippable)
        self.assertTrue(soap.sku.startswith("SKU-"))

    def test_json_feed_updates_existing_products(self):
        load_catalog_feed(self.write("feed.csv", CSV_FEED), self.catalog)
        cheese = self.catalog.get_product("C1")
        feed = [
            {"sku": "C1", "name": "Cheese", "price": 300, "stock": 12},
            {"name": "Hamada", "price": 500, "stock": 10, "expires": "2027-12-31", "weight": 0.5},
        ]
        inserted, updated = load_catalog_feed(self.write("feed.json", json.dumps(feed)), self.catalog)
        self.assertEqual((inserted, updated), (1, 1))
        self.assertIs(self.catalog.get_product("C1"), cheese)
        self.assertEqual(cheese.quantity, 12)
        self.assertTrue(self.catalog.get_product_by_name("Hamada").is_perishable)

    def test_json_feed_skips_products_the_catalog_rejects(self):
        feed = [{"name": "Negative", "price": 1, "stock": -3}, "not an object", {"name": "Ok", "price": 1, "stock": 1}]
        with self.assertLogs("catalog_feed", level="WARNING"):
            inserted, updated = load_catalog_feed(self.write("feed.json", json.dumps(feed)), self.catalog)
        self.assertEqual((inserted, updated), (1, 0))
        self.assertIsNone(self.catalog.get_product_by_name("Negative"))

    def test_json_feed_must_be_a_list(self):
        with self.assertRaises(InvalidArgument):
            JSONCatalogAdapter().parse('{"name": "Cheese"}')
        with self.assertRaises(InvalidArgument):
            JSONCatalogAdapter().parse("not json")

    def test_fractional_stock_and_non_finite_price_are_skipped(self):
        feed = [
            {"name": "Half", "price": 10, "stock": 2.7},
            {"name": "Free", "price": "nan", "stock": 1},
            {"name": "Pricey", "price": "inf", "stock": 1},
            {"name": "Whole", "price": 10, "stock": 3.0},
        ]
        with self.assertLogs("catalog_feed", level="WARNING") as cm:
            inserted, updated = load_catalog_feed(self.write("feed.json", json.dumps(feed)), self.catalog)
        self.assertEqual((inserted, updated), (1, 0))
        self.assertEqual(len([line for line in cm.output if "malformed" in line]), 3)
        self.assertEqual(self.catalog.get_product_by_name("Whole").quantity, 3)
        self.assertIsNone(self.catalog.get_product_by_name("Half"))

    def test_select_adapter(self):
        self.assertIsInstance(select_adapter("a.CSV"), CSVCatalogAdapter)
        self.assertIsInstance(select_adapter("a.json"), JSONCatalogAdapter)
        self.assertIsInstance(select_adapter("a.jsn"), JSONCatalogAdapter)
        with self.assertRaises(InvalidArgument):
            select_adapter("a.xml")


if __name__ == "__main__":
    unittest.main(verbosity=2)
