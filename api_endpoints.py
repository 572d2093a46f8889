#!/usr/bin/env python3
"""
FastAPI route handlers
"""

import asyncio
import logging
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from broadcaster import EventBroadcaster, Subscriber, format_sse
from config import API_TITLE, API_VERSION
from errors import FilingMonitorError, PersistenceFailure

logger = logging.getLogger(__name__)

KEEPALIVE_INTERVAL = 15  # seconds between SSE comment pings


async def root():
    """Root endpoint with API information"""
    return {
        "message": API_TITLE,
        "version": API_VERSION,
        "endpoints": {
            "/status": "Get current monitoring status",
            "/start": "Start continuous monitoring",
            "/stop": "Stop monitoring",
            "/check-now": "Check for a new filing immediately",
            "/stats": "Get processing statistics",
            "/api/latest": "Latest stored filing",
            "/api/sse": "Live filing events (Server-Sent Events)"
        }
    }


async def get_status(request: Request):
    """Get current monitoring status"""
    monitor = request.app.state.monitor
    status = monitor.state.to_dict()
    status["check_interval_seconds"] = monitor.interval
    status["cycle_in_progress"] = monitor.cycle_in_progress
    status["connected_clients"] = request.app.state.broadcaster.subscriber_count
    return status


async def start_monitoring(request: Request):
    """Start continuous monitoring"""
    monitor = request.app.state.monitor
    if monitor.state.is_running:
        return JSONResponse(
            status_code=400,
            content={"error": "Monitoring is already running"}
        )

    monitor.start()
    logger.info("✅ Monitoring started")
    return {
        "message": "Monitoring started successfully",
        "check_interval_seconds": monitor.interval
    }


async def stop_monitoring(request: Request):
    """Stop monitoring"""
    monitor = request.app.state.monitor
    if not monitor.state.is_running:
        return JSONResponse(
            status_code=400,
            content={"error": "Monitoring is not running"}
        )

    monitor.stop()
    logger.info("Monitoring stopped by user request")
    return {
        "message": "Monitoring stopped successfully",
        "total_processed": monitor.state.total_processed
    }


async def check_now(request: Request):
    """Run one filing check immediately (manual trigger)"""
    monitor = request.app.state.monitor
    if monitor.cycle_in_progress:
        return JSONResponse(
            status_code=409,
            content={"error": "A filing check is already in progress"}
        )

    logger.info("🚀 Manual check triggered")
    try:
        await monitor.run_exclusive_cycle()
    except FilingMonitorError as e:
        logger.error(f"❌ Error in manual check: {e}")
        monitor.state.record_error(e)
        raise HTTPException(status_code=500, detail="Filing check failed")

    return {
        "message": "Filing check completed",
        "last_document_url": monitor.state.last_document_url,
        "total_processed": monitor.state.total_processed
    }


async def get_stats(request: Request):
    """Get detailed statistics"""
    monitor = request.app.state.monitor
    store_stats = await asyncio.to_thread(request.app.state.store.stats)
    return {
        "elasticsearch": store_stats,
        "monitor": {
            "is_running": monitor.state.is_running,
            "total_processed_by_monitor": monitor.state.total_processed,
            "last_check": monitor.state.last_check,
            "last_document_url": monitor.state.last_document_url
        },
        "connected_clients": request.app.state.broadcaster.subscriber_count
    }


async def get_latest_filing(request: Request):
    """Latest stored filing"""
    logger.info("🔍 Processing GET /api/latest request")
    try:
        data = await asyncio.to_thread(request.app.state.store.fetch_latest)
    except PersistenceFailure as e:
        logger.error(f"❌ Error retrieving latest transaction: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to retrieve transaction data"}
        )

    if not data:
        return JSONResponse(
            status_code=404,
            content={"error": "No transaction data found"}
        )
    return data


async def event_stream(request: Request, broadcaster: EventBroadcaster, subscriber: Subscriber):
    """Yield SSE messages for one subscriber until it disconnects"""
    try:
        while not subscriber.closed:
            if await request.is_disconnected():
                break
            try:
                event = await asyncio.wait_for(subscriber.receive(), timeout=KEEPALIVE_INTERVAL)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(event)
    finally:
        broadcaster.unsubscribe(subscriber)


async def subscribe_events(request: Request):
    """Open a live event stream"""
    broadcaster = request.app.state.broadcaster
    subscriber = broadcaster.subscribe()
    return StreamingResponse(
        event_stream(request, broadcaster, subscriber),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive"
        }
    )
