"""
Tests for the server entry point helpers.
"""

import argparse
import logging
import os

import pytest

from hubflow.server import (
    Base64SanitizingFilter,
    configure_logging,
    sanitize_base64,
    validate_mongo_uri,
    validate_port,
)


class TestSanitizeBase64:

    def test_long_data_url_truncated(self):
        data = "A" * 400
        result = sanitize_base64(f"image: data:image/png;base64,{data} done")

        assert result == "image: data:image/png;base64,[base64 data, 400 chars truncated] done"

    def test_short_strings_untouched(self):
        assert sanitize_base64("node n1 finished") == "node n1 finished"

    def test_filter_rewrites_args(self):
        record = logging.LogRecord("workflow.test", logging.INFO, __file__, 1, "payload %s", ("B" * 200,), None)

        assert Base64SanitizingFilter().filter(record)
        assert record.args == ("[base64 data, 200 chars truncated]",)


class TestArgumentValidation:

    def test_port(self):
        assert validate_port("8080") == 8080
        with pytest.raises(argparse.ArgumentTypeError):
            validate_port("70000")
        with pytest.raises(argparse.ArgumentTypeError):
            validate_port("http")

    def test_mongo_uri(self):
        assert validate_mongo_uri("mongodb://localhost:27017") == "mongodb://localhost:27017"
        with pytest.raises(argparse.ArgumentTypeError, match="Invalid MongoDB URI"):
            validate_mongo_uri("localhost:27017")


def test_configure_logging_writes_workflow_file(tmp_path):
    log_file = configure_logging(verbose=False, log_dir=str(tmp_path / "logs"))
    workflow_logger = logging.getLogger("workflow")
    try:
        logging.getLogger("workflow.test").info("hello from a node")
        for handler in workflow_logger.handlers:
            handler.flush()

        assert os.path.exists(log_file)
        with open(log_file, encoding="utf-8") as f:
            assert "hello from a node" in f.read()
    finally:
        for handler in list(workflow_logger.handlers):
            workflow_logger.removeHandler(handler)
            handler.close()
