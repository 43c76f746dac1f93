"""
Runtime configuration.

Values are read from the environment at call time so that the CLI server
can export them before the API app is imported. A .env file is loaded by
the app module on import.
"""

import os
from typing import List, Optional


DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_PROVIDER = "gemini"


def _get_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


def _get_float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


# Engine limits

def get_max_loop_iterations() -> int:
    return _get_int("WORKFLOW_MAX_LOOP_ITERATIONS", 1000)


def get_max_steps() -> int:
    return _get_int("WORKFLOW_MAX_STEPS", 10000)


def get_max_depth() -> int:
    return _get_int("WORKFLOW_MAX_DEPTH", 8)


# Execution store / event stream

def get_event_buffer_size() -> int:
    return _get_int("WORKFLOW_EVENT_BUFFER_SIZE", 1000)


def get_execution_max_age() -> float:
    """Seconds after which an execution is swept regardless of state."""
    return _get_float("WORKFLOW_EXECUTION_MAX_AGE", 1800)


def get_gc_interval() -> float:
    return _get_float("WORKFLOW_GC_INTERVAL", 60)


def get_sse_ping_interval() -> int:
    return _get_int("SSE_PING_INTERVAL", 15)


# External calls

def get_http_timeout() -> float:
    return _get_float("HTTP_NODE_TIMEOUT", 60)


def get_mcp_timeout() -> float:
    return _get_float("MCP_CALL_TIMEOUT", 60)


def get_gemini_api_key() -> Optional[str]:
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")


def get_openai_api_key() -> Optional[str]:
    return os.environ.get("OPENAI_API_KEY")


def get_drive_access_token() -> Optional[str]:
    return os.environ.get("GOOGLE_DRIVE_ACCESS_TOKEN")


def get_drive_root_folder_id() -> Optional[str]:
    return os.environ.get("GOOGLE_DRIVE_ROOT_FOLDER_ID")


# Persistence

def get_mongo_uri() -> Optional[str]:
    """MongoDB URI, or None when history persistence is disabled."""
    return os.environ.get("MONGODB_URI") or None


def get_mongo_database() -> str:
    return os.environ.get("MONGODB_DATABASE", "hubflow_db")


def get_cors_origins() -> List[str]:
    cors_origins_str = os.environ.get("CORS_ORIGINS", "")
    if cors_origins_str:
        return [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]
    return ["http://localhost:5173", "http://localhost:3000"]
