#!/usr/bin/env python3
"""
Main FastAPI application - Entry point
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import API_HOST, API_PORT, API_TITLE, API_DESCRIPTION, API_VERSION, LOG_FILE, LOG_LEVEL, LOG_FORMAT
from config import SOURCE_BASE_URL, ES_HOST, CHECK_INTERVAL, RETRY_DELAYS, AUTO_START_MONITOR, CORS_ORIGINS
from config import validate_config
from api_endpoints import (root, get_status, start_monitoring, stop_monitoring, check_now, get_stats,
                           get_latest_filing, subscribe_events)
from broadcaster import EventBroadcaster
from document_extractor import DocumentExtractor
from elasticsearch_client import FilingStore
from monitor import FilingMonitor
from retry import RetryController
from source_fetcher import SourceFetcher

# === Setup Logging ===
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format=LOG_FORMAT,
    handlers=[
        logging.FileHandler(LOG_FILE),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


def build_monitor(store: FilingStore, broadcaster: EventBroadcaster) -> FilingMonitor:
    extractor = DocumentExtractor()
    return FilingMonitor(
        fetcher=SourceFetcher(),
        retry_controller=RetryController(extractor.extract),
        store=store,
        broadcaster=broadcaster,
        interval=CHECK_INTERVAL
    )


def create_app(
    monitor: Optional[FilingMonitor] = None,
    store: Optional[FilingStore] = None,
    broadcaster: Optional[EventBroadcaster] = None,
    auto_start: bool = AUTO_START_MONITOR,
    check_config: bool = True,
) -> FastAPI:
    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    app.state.broadcaster = broadcaster or EventBroadcaster()
    app.state.store = store or FilingStore()
    app.state.monitor = monitor or build_monitor(app.state.store, app.state.broadcaster)

    # === Register Routes ===
    app.add_api_route("/", root, methods=["GET"])
    app.add_api_route("/status", get_status, methods=["GET"])
    app.add_api_route("/start", start_monitoring, methods=["POST"])
    app.add_api_route("/stop", stop_monitoring, methods=["POST"])
    app.add_api_route("/check-now", check_now, methods=["POST"])
    app.add_api_route("/stats", get_stats, methods=["GET"])
    app.add_api_route("/api/latest", get_latest_filing, methods=["GET"])
    app.add_api_route("/api/sse", subscribe_events, methods=["GET"])

    @app.on_event("startup")
    async def startup_event():
        """Run on application startup"""
        if check_config:
            validate_config()

        logger.info("=" * 70)
        logger.info(f"🚀 {API_TITLE} Started")
        logger.info("=" * 70)
        logger.info(f"Disclosure source: {SOURCE_BASE_URL}")
        logger.info(f"Elasticsearch: {ES_HOST}")
        logger.info(f"Check Interval: {app.state.monitor.interval} seconds")
        logger.info(f"Extraction retry delays: {RETRY_DELAYS} seconds")
        logger.info(f"📡 SSE URL: http://localhost:{API_PORT}/api/sse")
        logger.info("=" * 70)

        if auto_start:
            logger.info("🔄 Auto-starting filing monitoring...")
            app.state.monitor.start()
            logger.info("✅ Monitoring task started!")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Run on application shutdown"""
        await app.state.monitor.shutdown()
        logger.info("=" * 70)
        logger.info(f"🛑 {API_TITLE} Stopped")
        logger.info(f"Total filings processed: {app.state.monitor.state.total_processed}")
        logger.info("=" * 70)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=API_HOST, port=API_PORT)
