# --- path/bootstrap (keep this at the very top) ---
from pathlib import Path
import sys

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
# --- end path/bootstrap ---

import json
import logging
import os
import shutil
import tempfile
import unittest

import logging_config
from config import Settings, load_settings
from errors import InvalidArgument
from fees import FlatRateFeePolicy, WeightRateFeePolicy
from metrics import (
    CHECKOUT_DURATION_SECONDS,
    CHECKOUT_ERROR_TOTAL,
    CHECKOUT_TOTAL,
    CHECKOUTS_IN_PROGRESS,
    generate_metrics_text,
    reset_metrics,
)


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        settings = load_settings({})
        self.assertEqual(settings, Settings())
        self.assertEqual(settings.log_dir, "logs")
        self.assertEqual(settings.log_level_number, logging.INFO)
        self.assertIsNone(settings.catalog_path)
        policy = settings.fee_policy()
        self.assertIsInstance(policy, FlatRateFeePolicy)
        self.assertEqual(policy.rate, 10)

    def test_environment_overrides(self):
        settings = load_settings({
            "CHECKOUT_SHIPPING_POLICY": "weight",
            "CHECKOUT_SHIPPING_RATE": "0.5",
            "CHECKOUT_LOG_DIR": "",
            "CHECKOUT_LOG_LEVEL": "debug",
            "CHECKOUT_CATALOG_PATH": "feed.csv",
        })
        policy = settings.fee_policy()
        self.assertIsInstance(policy, WeightRateFeePolicy)
        self.assertEqual(policy.rate, 0.5)
        self.assertEqual(settings.log_dir, "")
        self.assertEqual(settings.log_level_number, logging.DEBUG)
        self.assertEqual(settings.catalog_path, "feed.csv")

    def test_invalid_values(self):
        with self.assertRaises(InvalidArgument):
            load_settings({"CHECKOUT_SHIPPING_RATE": "cheap"})
        with self.assertRaises(InvalidArgument):
            load_settings({"CHECKOUT_SHIPPING_POLICY": "drone"})
        with self.assertRaises(InvalidArgument):
            load_settings({"CHECKOUT_LOG_LEVEL": "LOUD"})
        with self.assertRaises(InvalidArgument):
            load_settings({"CHECKOUT_SHIPPING_RATE": "nan"})

    def test_reads_process_environment_by_default(self):
        old = os.environ.get("CHECKOUT_SHIPPING_RATE")
        os.environ["CHECKOUT_SHIPPING_RATE"] = "7"
        try:
            self.assertEqual(load_settings().fee_policy().rate, 7)
        finally:
            if old is None:
                del os.environ["CHECKOUT_SHIPPING_RATE"]
            else:
                os.environ["CHECKOUT_SHIPPING_RATE"] = old


class TestJsonLogging(unittest.TestCase):

    def setUp(self):
        self.root = logging.getLogger()
        self.saved_handlers = list(self.root.handlers)
        self.saved_level = self.root.level

    def tearDown(self):
        for handler in list(self.root.handlers):
            self.root.removeHandler(handler)
            if handler not in self.saved_handlers:
                handler.close()
        for handler in self.saved_handlers:
            self.root.addHandler(handler)
        self.root.setLevel(self.saved_level)

    def test_formatter_merges_context(self):
        record = logging.makeLogRecord({
            "msg": "Checkout completed",
            "levelname": "INFO",
            "checkout_id": "CHK-1",
            "customer": "Sara",
            "extra": {"total": 830},
        })
        payload = json.loads(logging_config.JsonFormatter().format(record))
        self.assertEqual(payload["message"], "Checkout completed")
        self.assertEqual(payload["level"], "INFO")
        self.assertEqual(payload["checkout_id"], "CHK-1")
        self.assertEqual(payload["customer"], "Sara")
        self.assertEqual(payload["total"], 830)
        self.assertTrue(payload["timestamp"].endswith("Z"))

    def test_configure_logging_writes_json_file(self):
        tmp = tempfile.mkdtemp()
        # Cleanups run after tearDown has closed the file handler
        self.addCleanup(shutil.rmtree, tmp, ignore_errors=True)
        logging_config.configure_logging(log_dir=tmp, level=logging.INFO)
        logging.getLogger("checkout").info("hello", extra={"customer": "Sara"})
        for handler in self.root.handlers:
            handler.flush()
        log_file = os.path.join(tmp, logging_config.LOG_FILE_NAME)
        with open(log_file, encoding="utf-8") as f:
            entry = json.loads(f.readline())
        self.assertEqual(entry["message"], "hello")
        self.assertEqual(entry["customer"], "Sara")
        self.assertEqual(entry["module"], "test_config_logging")

    def test_empty_log_dir_skips_file_handler(self):
        logging_config.configure_logging(log_dir="", level=logging.WARNING)
        self.assertEqual(len(self.root.handlers), 1)
        self.assertEqual(self.root.level, logging.WARNING)


class TestMetricsExport(unittest.TestCase):

    def setUp(self):
        reset_metrics()

    def test_prometheus_text(self):
        CHECKOUT_TOTAL.inc(outcome="success")
        CHECKOUT_ERROR_TOTAL.inc(type="expired")
        CHECKOUT_ERROR_TOTAL.inc(type="expired")
        text = generate_metrics_text().decode("utf-8")
        self.assertIn("# TYPE checkout_total counter", text)
        self.assertIn('checkout_total{outcome="success"} 1.0', text)
        self.assertIn('checkout_error_total{type="expired"} 2.0', text)

    def test_histogram_buckets_are_cumulative(self):
        CHECKOUT_DURATION_SECONDS.observe(0.003)
        CHECKOUT_DURATION_SECONDS.observe(0.07)
        CHECKOUT_DURATION_SECONDS.observe(5.0)
        lines = CHECKOUT_DURATION_SECONDS.to_prometheus()
        self.assertIn('checkout_duration_seconds_bucket{le="0.005"} 1', lines)
        self.assertIn('checkout_duration_seconds_bucket{le="0.1"} 2', lines)
        self.assertIn('checkout_duration_seconds_bucket{le="1.0"} 2', lines)
        self.assertIn('checkout_duration_seconds_bucket{le="+Inf"} 3', lines)
        self.assertIn("checkout_duration_seconds_count 3", lines)
        self.assertEqual(CHECKOUT_DURATION_SECONDS.count(), 3)

    def test_gauge_goes_up_and_down(self):
        CHECKOUTS_IN_PROGRESS.inc()
        CHECKOUTS_IN_PROGRESS.inc()
        CHECKOUTS_IN_PROGRESS.dec()
        self.assertEqual(CHECKOUTS_IN_PROGRESS.value(), 1)
        text = generate_metrics_text().decode("utf-8")
        self.assertIn("# TYPE checkouts_in_progress gauge", text)
        self.assertIn("checkouts_in_progress 1.0", text)

    def test_counters_only_increase(self):
        with self.assertRaises(ValueError):
            CHECKOUT_TOTAL.inc(-1, outcome="success")


if __name__ == "__main__":
    unittest.main(verbosity=2)
