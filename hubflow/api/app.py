"""
Workflow REST API - FastAPI application setup.

This module sets up the FastAPI application and includes all route modules.
The actual route handlers are in the routes/ subpackage.

Endpoints are organized by function:
- execution: Start and stop executions, answer prompts, history
- streaming: SSE streaming of execution events
"""

import asyncio
import logging
from typing import Any, Dict, Optional

# Load .env file if it exists (before other imports that might use env vars)
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hubflow import __version__, config
from hubflow.db import Database
from hubflow.engine import ExecutionStore, PromptBroker, get_default_registry
from hubflow.providers.ai import GenerationProviderRegistry
from hubflow.providers.drive import DriveClient, DriveWorkflowLoader
from hubflow.workflow import WorkflowProcessor

from . import dependencies
from .routes import execution_router, streaming_router

# Configure logger for API
logger = logging.getLogger('workflow.api')


# =============================================================================
# App Configuration
# =============================================================================

app = FastAPI(
    title="HubFlow API",
    description="Workflow execution engine with live event streaming",
    version=__version__
)

CORS_ORIGINS = config.get_cors_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialized on startup
db: Optional[Database] = None
gc_task: Optional[asyncio.Task] = None


def build_services() -> Dict[str, Any]:
    """Collaborators handed to node handlers, keyed by service name."""
    services: Dict[str, Any] = {"ai_providers": GenerationProviderRegistry}

    access_token = config.get_drive_access_token()
    if access_token:
        drive = DriveClient(access_token, root_folder_id=config.get_drive_root_folder_id())
        services["drive"] = drive
        services["workflow_loader"] = DriveWorkflowLoader(drive)
        logger.info("[STARTUP] Drive client configured")
    else:
        logger.warning("[STARTUP] GOOGLE_DRIVE_ACCESS_TOKEN not set; Drive nodes and workflow loading disabled")

    return services


@app.on_event("startup")
async def startup():
    """Create the processor and start the execution sweeper"""
    global db, gc_task

    logger.info(f"[CORS] Allowed origins: {CORS_ORIGINS}")

    if not dependencies.has_processor():
        history_repo = None
        mongo_uri = config.get_mongo_uri()
        if mongo_uri:
            db = Database(connection_string=mongo_uri, database_name=config.get_mongo_database())
            history_repo = db.history_repo
        else:
            logger.info("[STARTUP] MONGODB_URI not set; execution history disabled")

        processor = WorkflowProcessor(
            store=ExecutionStore(event_buffer_size=config.get_event_buffer_size()),
            broker=PromptBroker(),
            registry=get_default_registry(),
            services=build_services(),
            history_repo=history_repo,
        )
        dependencies.set_processor(processor)

    processor = dependencies.get_processor()
    missing = processor.registry.missing_node_types()
    if missing:
        logger.warning(f"[STARTUP] No handler for node types: {', '.join(missing)}")

    gc_task = asyncio.create_task(
        processor.run_gc_loop(config.get_gc_interval(), config.get_execution_max_age())
    )


@app.on_event("shutdown")
async def shutdown():
    """Cancel live executions and close the database"""
    global db, gc_task

    if gc_task is not None:
        gc_task.cancel()
        gc_task = None

    if dependencies.has_processor():
        processor = dependencies.get_processor()
        logger.info(f"[SHUTDOWN] Cancelling {len(processor.store)} executions...")
        await processor.shutdown()

    if db:
        db.close()
        db = None

    logger.info("[SHUTDOWN] Server shutdown complete")


# =============================================================================
# Include Route Modules
# =============================================================================

app.include_router(execution_router)
app.include_router(streaming_router)


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    executions = len(dependencies.get_processor().store) if dependencies.has_processor() else 0
    return {
        "status": "healthy",
        "executions": executions,
        "database": "connected" if db else "not configured"
    }
