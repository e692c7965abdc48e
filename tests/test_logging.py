"""Tests for the structured logging system (fee_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from fee_kernel.domain.disciplines import Phase
from fee_kernel.exceptions import StructureNotFoundError
from fee_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "fee_kernel.test"
        assert record["component"] == "test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("fee_computed", extra={"bracket_index": 2, "discipline": "Mechanical"})

        record = _parse_log(stream)
        assert record["bracket_index"] == 2
        assert record["discipline"] == "Mechanical"

    def test_decimal_serialized_as_string(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("rate", extra={"adjusted_rate": Decimal("4.50")})

        assert _parse_log(stream)["adjusted_rate"] == "4.50"

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("with_uuid", extra={"structure_uuid": uid})

        assert _parse_log(stream)["structure_uuid"] == str(uid)

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(proposal_id="prop-9", structure_id="bldg-a")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["proposal_id"] == "prop-9"
        assert record["structure_id"] == "bldg-a"

    def test_kernel_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise StructureNotFoundError("bldg-x")
        except StructureNotFoundError:
            get_logger("test").error("lookup_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "STRUCTURE_NOT_FOUND"
        assert record["exc_type"] == "StructureNotFoundError"
        assert record["exc_structure_id"] == "bldg-x"
        assert "traceback" in record

    def test_debug_filtered_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]

    def test_context_wins_over_extra(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(proposal_id="prop-1"):
            get_logger("test").info("clash", extra={"proposal_id": "other"})

        assert _parse_log(stream)["proposal_id"] == "prop-1"

    def test_enum_serialized_by_value(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("engines.totals").info("phase", extra={"phase": Phase.CONSTRUCTION})

        record = _parse_log(stream)
        assert record["phase"] == "construction"
        assert record["component"] == "engines.totals"

    def test_configure_is_idempotent(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        get_logger("test").info("once")

        assert len(_parse_all_logs(stream)) == 1


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(reference_set_id="x", proposal_id="y")
        assert LogContext.get_all() == {"reference_set_id": "x", "proposal_id": "y"}

    def test_clear(self):
        LogContext.set(reference_set_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(proposal_id="outer")
        with LogContext.bind(proposal_id="inner"):
            assert LogContext.get_all()["proposal_id"] == "inner"
        assert LogContext.get_all()["proposal_id"] == "outer"

    def test_bind_none_is_ignored(self):
        with LogContext.bind(proposal_id=None):
            assert "proposal_id" not in LogContext.get_all()

    def test_bind_restores_none(self):
        with LogContext.bind(structure_id="temp"):
            assert LogContext.get_all()["structure_id"] == "temp"
        assert "structure_id" not in LogContext.get_all()

    def test_set_merges(self):
        LogContext.set(proposal_id="p")
        LogContext.set(structure_id="s", proposal_id=None)
        assert LogContext.get_all() == {"proposal_id": "p", "structure_id": "s"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            LogContext.set(user="someone")
        with pytest.raises(ValueError):
            with LogContext.bind(user="someone"):
                pass
        assert LogContext.get_all() == {}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(proposal_id="temp"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}
