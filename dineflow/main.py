"""
FastAPI Application Entry Point

DineFlow Order Service - table ordering with a live kitchen display.

Endpoints:
    - POST /api/orders: Place an order
    - GET /api/orders: List orders (newest first, optional status filter)
    - GET /api/orders/stream: Server-Sent Events for kitchen displays
    - GET /api/orders/{id}: Get one order
    - PATCH /api/orders/{id}/status: Move an order through the kitchen
    - GET /api/stats: Dashboard metrics
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from contextlib import aclosing, asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

import redis
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from dineflow.core.config import get_settings, setup_logging
from dineflow.core.exceptions import OrderServiceError
from dineflow.models import OrderStatus
from dineflow.schemas import (
    ErrorResponse,
    HealthResponse,
    OrderCreate,
    OrderResponse,
    StatsResponse,
    StatusUpdate,
)
from dineflow.services.broadcaster import EventBroadcaster, Subscription
from dineflow.services.lifecycle import OrderLifecycleEngine
from dineflow.services.orders import Order, build_order_store
from dineflow.services.stats import StatsAggregator
from dineflow.tasks import export_order_to_ledger

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the order components for this application instance and tear
    them down on shutdown.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🍽️  Starting {settings.app_name} for {settings.restaurant_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    store = build_order_store(settings)
    await store.start()
    logger.info(f"✅ Order Store: {store.backend_name}")

    broadcaster = EventBroadcaster(
        keepalive_interval=settings.keepalive_interval_seconds,
        queue_size=settings.listener_queue_size,
    )
    app.state.store = store
    app.state.broadcaster = broadcaster
    app.state.engine = OrderLifecycleEngine(store, broadcaster)
    app.state.stats = StatsAggregator(store)

    if settings.ledger_export_enabled:
        logger.info("✅ Ledger export: enabled (Celery)")

    problems = settings.validate_production_config()
    if problems:
        logger.warning(f"⚠️ Production config issues: {problems}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await store.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Table ordering backend: order lifecycle, kitchen state machine "
        "and real-time order events."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_engine(request: Request) -> OrderLifecycleEngine:
    return request.app.state.engine


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster


def get_stats_aggregator(request: Request) -> StatsAggregator:
    return request.app.state.stats


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def to_response(order: Order) -> OrderResponse:
    return OrderResponse(**order.to_dict())


def queue_ledger_export(order: Order) -> None:
    """Hand the order to the ledger worker; never fails the request."""
    if not settings.ledger_export_enabled:
        return
    try:
        export_order_to_ledger.delay(order.to_dict())
    except Exception as e:
        logger.error(f"Could not queue ledger export for order #{order.order_number}: {e}")


async def sse_events(
    request: Request,
    broadcaster: EventBroadcaster,
    subscription: Subscription,
) -> AsyncIterator[str]:
    """Drain one listener's queue as Server-Sent Events until the client leaves."""
    async with aclosing(broadcaster.listen(subscription)) as messages:
        async for message in messages:
            if await request.is_disconnected():
                break
            yield message.encode()


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.restaurant_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "orders": "/api/orders",
        "stream": "/api/orders/stream",
        "stats": "/api/stats",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(request: Request) -> HealthResponse:
    """Verify the order store (and the ledger queue, if enabled) are reachable."""
    store = request.app.state.store
    store_status = "healthy" if await store.health_check() else "unhealthy"

    # Check Redis
    ledger_status = "disabled"
    if settings.ledger_export_enabled:
        ledger_status = "healthy"
        try:
            r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
            r.ping()
            r.close()
        except Exception as e:
            ledger_status = f"unhealthy: {str(e)}"
            logger.error(f"Redis health check failed: {e}")

    overall = "operational" if all(
        s in ("healthy", "disabled") for s in [store_status, ledger_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        order_store=store_status,
        ledger_queue=ledger_status,
        listeners=request.app.state.broadcaster.listener_count,
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    engine: OrderLifecycleEngine = Depends(get_engine),
) -> OrderResponse:
    """
    Place a new order from a table (or takeaway with table 0).

    Prices are taken from the submitted line items as the menu showed them.
    """
    order = await engine.create_order(
        items=order_data.line_items(),
        table_number=order_data.table_number or 0,
        customer_name=order_data.customer_name or "Guest",
        notes=order_data.notes or "",
    )
    queue_ledger_export(order)
    return to_response(order)


@app.get(
    "/api/orders",
    response_model=List[OrderResponse],
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    status: Optional[str] = Query(None),
    engine: OrderLifecycleEngine = Depends(get_engine),
) -> List[OrderResponse]:
    """Orders newest first, optionally filtered by status."""
    status_enum = None
    if status:
        try:
            status_enum = OrderStatus(status.lower())
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Options: {[s.value for s in OrderStatus]}"
            )

    orders = await engine.list_orders(status_enum)
    return [to_response(order) for order in orders]


@app.get(
    "/api/orders/stream",
    tags=["Orders"],
    summary="Kitchen Event Stream",
)
async def order_stream(
    request: Request,
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> StreamingResponse:
    """
    Server-Sent Events stream of ``new-order`` and ``order-updated`` events.

    A ``:heartbeat`` comment is sent after every quiet keep-alive interval.
    """
    subscription = broadcaster.subscribe()
    return StreamingResponse(
        sse_events(request, broadcaster, subscription),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    engine: OrderLifecycleEngine = Depends(get_engine),
) -> OrderResponse:
    """Get a specific order by ID."""
    return to_response(await engine.get_order(order_id))


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Update Order Status",
)
async def update_order_status(
    order_id: str,
    update: StatusUpdate,
    engine: OrderLifecycleEngine = Depends(get_engine),
) -> OrderResponse:
    """Move an order along new → preparing → ready → completed (or cancel it)."""
    order = await engine.transition(order_id, OrderStatus(update.status.value))
    queue_ledger_export(order)
    return to_response(order)


# =============================================================================
# DASHBOARD ENDPOINTS
# =============================================================================

@app.get(
    "/api/stats",
    response_model=StatsResponse,
    tags=["Dashboard"],
)
async def get_stats(
    stats: StatsAggregator = Depends(get_stats_aggregator),
) -> StatsResponse:
    """Today's orders, active orders, completions and revenue."""
    result = await stats.compute_stats()
    return StatsResponse(**result.to_dict())


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderServiceError)
async def order_error_handler(request: Request, exc: OrderServiceError) -> JSONResponse:
    """Turn lifecycle errors into structured responses."""
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc}")
    else:
        logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc}")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "dineflow.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    run()
