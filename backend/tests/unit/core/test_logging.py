"""
Tests for logging configuration.

WHY: Tokens and keys must never reach log output, and every record should
carry the request id for correlation.
"""

import logging

from practice_api.core.logging import (
    REDACTED,
    RequestIdFilter,
    SensitiveDataFilter,
    redact,
    setup_logging,
)
from practice_api.middleware.request_context import RequestContext, _request_context


def make_record(msg, *args) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


class TestRedact:
    def test_bearer_credential(self):
        assert redact("header was Bearer abc.def") == f"header was Bearer {REDACTED}"

    def test_bare_jwt(self):
        text = redact("token eyJhbGciOiJSUzI1NiJ9.eyJzdWIiOiJ1In0.c2ln rejected")

        assert "eyJ" not in text
        assert REDACTED in text

    def test_pem_block(self):
        pem = "-----BEGIN PUBLIC KEY-----\nMIIB\n-----END PUBLIC KEY-----"

        assert redact(f"key {pem} loaded") == f"key {REDACTED} loaded"

    def test_plain_text_untouched(self):
        assert redact("Sale 42 created") == "Sale 42 created"


class TestFilters:
    def test_sensitive_filter_rewrites_formatted_message(self):
        record = make_record("Authorization: %s", "Bearer eyJa.eyJb.sig")

        SensitiveDataFilter().filter(record)

        assert record.getMessage() == f"Authorization: Bearer {REDACTED}"

    def test_request_id_outside_request(self):
        record = make_record("hello")

        RequestIdFilter().filter(record)

        assert record.request_id == "-"

    def test_request_id_inside_request(self):
        token = _request_context.set(
            RequestContext(
                request_id="req-1", ip_address="127.0.0.1", user_agent=None, path="/", method="GET"
            )
        )
        try:
            record = make_record("hello")
            RequestIdFilter().filter(record)
        finally:
            _request_context.reset(token)

        assert record.request_id == "req-1"


class TestSetupLogging:
    def test_repeated_setup_installs_one_handler(self):
        setup_logging("DEBUG")
        setup_logging("INFO")

        root = logging.getLogger()
        installed = [h for h in root.handlers if getattr(h, "_practice_api", False)]
        assert len(installed) == 1
        assert root.level == logging.INFO
