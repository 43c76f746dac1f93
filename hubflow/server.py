#!/usr/bin/env python
"""
HubFlow API Server - HTTP REST API for workflow execution.

Usage:
    hubflow-server --host HOST --port PORT [--mongo URI --db DATABASE] [options]

Arguments:
    --host          Server host (default 127.0.0.1)
    --port          Server port (default 8000)
    --mongo         MongoDB connection URI for execution history (optional)
    --db            MongoDB database name (default hubflow_db)
    -v, --verbose   Debug output on the console
    --trace         Include third-party debug logs

Endpoints:
    POST /api/workflow/{id}/execute         - Start an execution
    GET  /api/workflow/{id}/execute/stream  - SSE event stream
    POST /api/workflow/{id}/stop            - Cancel an execution
    POST /api/prompt-response               - Answer a pending prompt
    GET  /api/workflow/history              - Finished executions
    GET  /health                            - Health check
"""

import argparse
import logging
import os
import re
from logging.handlers import RotatingFileHandler

LOG_FILE_NAME = 'hubflow.log'
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

# Drive file-data and AI attachments end up in node logs as long base64 runs
_BASE64_RUN = re.compile(r'(data:[^;]+;base64,)?([A-Za-z0-9+/=]{100,})')

_NOISY_LOGGERS = ('sse_starlette', 'sse_starlette.sse', 'pymongo', 'urllib3', 'httpx')


def sanitize_base64(message: str, max_base64_len: int = 50) -> str:
    """Replace long base64 runs (optionally data-URL prefixed) with a length marker."""

    def shorten(match: re.Match) -> str:
        data_url, payload = match.group(1) or '', match.group(2)
        if len(payload) <= max_base64_len:
            return match.group(0)
        return f"{data_url}[base64 data, {len(payload)} chars truncated]"

    return _BASE64_RUN.sub(shorten, message)


class Base64SanitizingFilter(logging.Filter):
    """Shortens base64 payloads in both the message and its %-args."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = sanitize_base64(str(record.msg))
        if isinstance(record.args, tuple):
            record.args = tuple(
                sanitize_base64(value) if isinstance(value, str) else value
                for value in record.args
            )
        return True


def validate_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        port = 0
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"Port must be an integer from 1 to 65535, got '{value}'")
    return port


def validate_mongo_uri(value: str) -> str:
    if value.startswith(("mongodb://", "mongodb+srv://")):
        return value
    raise argparse.ArgumentTypeError(
        f"Invalid MongoDB URI '{value}': expected mongodb://host:port or mongodb+srv://..."
    )


def configure_logging(verbose: bool, log_dir: str, trace: bool = False) -> str:
    """
    Set up console and file logging.

    The console follows --verbose. Everything under the 'workflow' logger
    also goes to a rotating file at INFO or above. Returns the file path.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, LOG_FILE_NAME)
    sanitizer = Base64SanitizingFilter()

    handler = RotatingFileHandler(
        log_path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8'
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)-7s [%(name)s] %(message)s', datefmt='%Y-%m-%d %H:%M:%S'
    ))
    handler.addFilter(sanitizer)

    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger().addFilter(sanitizer)

    engine_logger = logging.getLogger('workflow')
    engine_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    engine_logger.addHandler(handler)

    third_party_level = logging.DEBUG if trace else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return log_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hubflow-server",
        description="Run the HubFlow workflow execution API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    hubflow-server --port 8000
    hubflow-server --host 0.0.0.0 --port 8080 --mongo mongodb://localhost:27017 --db hubflow_db -v
        """
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default 127.0.0.1)")
    parser.add_argument("--port", default=8000, type=validate_port, help="Port to listen on (default 8000)")
    parser.add_argument("--mongo", type=validate_mongo_uri, help="MongoDB URI; enables execution history")
    parser.add_argument("--db", default=None, help="MongoDB database name (default hubflow_db)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output on the console")
    parser.add_argument("--trace", action="store_true", help="Also show sse-starlette/pymongo debug logs")
    return parser


def main():
    args = build_parser().parse_args()

    log_dir = os.environ.get('LOG_DIR', os.path.join(os.getcwd(), 'logs'))
    log_path = configure_logging(args.verbose, log_dir, trace=args.trace)

    # hubflow.config reads these when the app starts up
    if args.mongo:
        os.environ["MONGODB_URI"] = args.mongo
    if args.db:
        os.environ["MONGODB_DATABASE"] = args.db

    import uvicorn

    from hubflow.api.app import app

    print("HubFlow API Server")
    print(f"  Listening: http://{args.host}:{args.port}")
    print(f"  History:   {args.mongo or 'disabled'}")
    print(f"  Log file:  {log_path}")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="debug" if args.verbose else "info",
        timeout_keep_alive=300
    )


if __name__ == "__main__":
    main()
