"""
Tests for logging filters and the JSON formatter
"""
import json
import logging

from dreammapper.core.logging_config import (ContextualFormatter,
                                             LoggingConfig,
                                             SensitiveDataFilter)


def make_record(msg, args=None, **extra):
    record = logging.LogRecord("dreammapper.test", logging.WARNING, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_astronomy_credentials_are_masked():
    record = make_record("GET https://api.test/astronomy?accesskey=abc123&secretkey=s3cr3t&placeid=norway/oslo")
    SensitiveDataFilter().filter(record)
    assert "abc123" not in record.msg
    assert "s3cr3t" not in record.msg
    assert "accesskey=***" in record.msg
    assert "placeid=norway/oslo" in record.msg


def test_masking_applies_to_args():
    record = make_record("calling %s", ("Bearer sk-live-xyz",))
    SensitiveDataFilter().filter(record)
    assert record.getMessage() == "calling Bearer ***"


def test_disabled_filter_leaves_message_alone():
    record = make_record("accesskey=abc123")
    SensitiveDataFilter(enabled=False).filter(record)
    assert record.msg == "accesskey=abc123"


def test_json_formatter_merges_context_and_extra():
    LoggingConfig.set_context(request_id="req-1", session_id="s-9")
    try:
        line = ContextualFormatter().format(make_record("Dream analysis completed", dream_id="d-1", motif_count=3))
    finally:
        LoggingConfig.clear_context()

    data = json.loads(line)
    assert data["message"] == "Dream analysis completed"
    assert data["level"] == "WARNING"
    assert data["request_id"] == "req-1"
    assert data["session_id"] == "s-9"
    assert data["dream_id"] == "d-1"
    assert data["motif_count"] == 3


def test_metrics_handler_counts_levels():
    LoggingConfig.reset_metrics()
    LoggingConfig.get_logger("dreammapper.test").warning("counted")
    assert LoggingConfig.get_metrics()["WARNING"] >= 1
