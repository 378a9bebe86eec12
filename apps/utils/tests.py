# apps/utils/tests.py
import json
import logging

from django.test import TestCase, SimpleTestCase
from rest_framework import status

from apps.warehouse.models import Warehouse
from .exceptions import (
    BusinessLogicException,
    InsufficientStockError,
    InvalidTransitionError,
    custom_exception_handler,
)
from .logging import JSONFormatter
from .utils import apply_sort, query_flag


class SortAndFlagTests(TestCase):
    def setUp(self):
        Warehouse.objects.create(name="B", code="B2")
        Warehouse.objects.create(name="A", code="A1")

    def test_apply_sort_whitelist(self):
        qs = Warehouse.objects.all()
        self.assertEqual(
            [w.code for w in apply_sort(qs, "-code", {"name", "code"}, "name")], ["B2", "A1"]
        )
        # unknown field falls back to default
        self.assertEqual(
            [w.code for w in apply_sort(qs, "password", {"name", "code"}, "name")], ["A1", "B2"]
        )

    def test_apply_sort_mapping(self):
        qs = Warehouse.objects.all()
        sorted_qs = apply_sort(qs, "-label", {"label": "name"}, "label")
        self.assertEqual([w.name for w in sorted_qs], ["B", "A"])

    def test_query_flag(self):
        self.assertTrue(query_flag({"x": "true"}, "x"))
        self.assertTrue(query_flag({"x": "1"}, "x"))
        self.assertFalse(query_flag({"x": "no"}, "x"))
        self.assertFalse(query_flag({}, "x"))


class ExceptionHandlerTests(SimpleTestCase):
    def test_business_errors_rendered_with_status(self):
        res = custom_exception_handler(InsufficientStockError(5, 2, 3), {})
        self.assertEqual(res.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(res.data, {
            "error": "Insufficient stock for variant ID 5. Available: 2, Required: 3",
            "code": "insufficient_stock",
        })

        res = custom_exception_handler(BusinessLogicException("nope"), {})
        self.assertEqual((res.status_code, res.data["code"]), (400, "business_error"))

    def test_invalid_transition_message(self):
        exc = InvalidTransitionError("cancel transfer", "in_transit", "draft")
        self.assertEqual(exc.message, "Cannot cancel transfer: status is 'in_transit', expected 'draft'.")
        self.assertEqual(custom_exception_handler(exc, {}).status_code, status.HTTP_409_CONFLICT)

    def test_unhandled_error_is_500(self):
        with self.assertLogs("apps.utils.exceptions", level="ERROR"):
            res = custom_exception_handler(RuntimeError("boom"), {})
        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(res.data["code"], "server_error")


class JSONFormatterTests(SimpleTestCase):
    def make_record(self, msg, **extra):
        record = logging.LogRecord("apps.test", logging.INFO, __file__, 10, msg, None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_redacts_sensitive_keys(self):
        out = json.loads(JSONFormatter().format(self.make_record({"user": "x", "password": "hunter2"})))
        self.assertIn("***REDACTED***", out["msg"])
        self.assertNotIn("hunter2", out["msg"])

    def test_carries_inventory_context(self):
        out = json.loads(JSONFormatter().format(self.make_record("moved", variant_id=5, warehouse_id=2)))
        self.assertEqual(out["msg"], "moved")
        self.assertEqual((out["variant_id"], out["warehouse_id"]), ("5", "2"))
        self.assertEqual(out["lvl"], "INFO")


class HealthCheckTests(TestCase):
    def test_health_ok(self):
        res = self.client.get("/api/v1/utils/health/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["components"]["db"], "ok")

    def test_server_info(self):
        res = self.client.get("/api/v1/utils/info/")
        self.assertEqual(res.json()["app_name"], "Stockroom")
