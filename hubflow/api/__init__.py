"""
Workflow REST API

Components:
- app: FastAPI application with execution, prompt and streaming routes
- dependencies: Processor and principal injection

Usage:
    hubflow-server --port 8000
"""


# Lazy import for app to avoid import errors when FastAPI not installed
def get_app():
    from .app import app
    return app
