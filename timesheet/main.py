"""FastAPI application entry point."""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timesheet.config import settings
from timesheet.database import database
from timesheet.routers import auth, entries, summaries
from timesheet.services.aggregator import HoursAggregator
from timesheet.services.entry_watcher import EntryChangeWatcher, log_watcher_exit
from timesheet.store.memory import InMemoryStore
from timesheet.store.mongo import MongoStore

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await database.connect()
    store = database.store
    aggregator = HoursAggregator(store, dedupe=settings.dedupe_entry_events)
    watcher_task = None

    if isinstance(store, InMemoryStore):
        store.subscribe(aggregator.handle_change)
    elif isinstance(store, MongoStore) and settings.run_entry_watcher:
        watcher = EntryChangeWatcher(
            store,
            aggregator,
            max_attempts=settings.trigger_max_attempts,
            retry_delay=settings.trigger_retry_delay_seconds,
            restart_delay=settings.trigger_restart_delay_seconds,
        )
        watcher_task = asyncio.create_task(watcher.run_forever())
        watcher_task.add_done_callback(log_watcher_exit)
    else:
        logger.info("Entry watcher disabled; run scripts/watch_entries.py separately")

    yield

    # Shutdown
    # A task that already died was reported by log_watcher_exit
    if watcher_task is not None and not watcher_task.done():
        watcher_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher_task
    await database.disconnect()


app = FastAPI(
    title="Timesheet API",
    description="Work session logging with monthly hour summaries",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(entries.router)
app.include_router(summaries.router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"status": "ok", "message": "Timesheet API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
