"""Tests for log redaction and the audit trail sink."""

import pytest
from loguru import logger

from src.api import logging_config
from src.api.logging_config import is_audit_record, redact, setup_logging


class TestRedaction:
    def test_card_number_keeps_last_four(self):
        assert redact("card 4111111111111111 declined") == "card ************1111 declined"

    def test_short_numbers_untouched(self):
        assert redact("Payment 42 recorded (49.99, Pending)") == "Payment 42 recorded (49.99, Pending)"

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("{'password': 'Str0ng!Pass'}", "{'password': '***'}"),
            ('{"cvv": "123", "amount": "5"}', '{"cvv": "***", "amount": "5"}'),
            ("access_token=abc.def.ghi", "access_token=***"),
        ],
    )
    def test_secret_fields_blanked(self, message, expected):
        assert redact(message) == expected


class TestAuditSink:
    def test_audit_filter(self):
        assert is_audit_record({"message": "AUDIT[LOGIN_SUCCESS]: User: alice | IP: N/A"})
        assert not is_audit_record({"message": "Database connection pool ready"})

    def test_audit_lines_get_their_own_file(self, tmp_path):
        setup_logging(tmp_path)
        try:
            logger.info("AUDIT[PAYMENT_INITIATED]: User: alice | IP: 10.0.0.5")
            logger.info("Payment 7 recorded for 'alice' (4111111111111111)")
            logger.complete()
        finally:
            setup_logging()

        audit_text = next(tmp_path.glob("audit_*.log")).read_text(encoding="utf-8")
        main_text = next(tmp_path.glob("payment_portal_*.log")).read_text(encoding="utf-8")

        assert "AUDIT[PAYMENT_INITIATED]" in audit_text
        assert "Payment 7" not in audit_text
        assert "************1111" in main_text
        assert "4111111111111111" not in main_text

    def test_request_logger_tagged(self, tmp_path):
        setup_logging(tmp_path)
        try:
            logging_config.get_request_logger().warning("Malformed request to /api/login")
            logger.complete()
        finally:
            setup_logging()

        errors_text = next(tmp_path.glob("errors_*.log")).read_text(encoding="utf-8")
        assert "| HTTP  |" in errors_text
