"""Main application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from stockchart.api.error_handlers import validation_exception_handler
from stockchart.api.routes import router
from stockchart.services.candle_source import CandleSourceAdapter
from stockchart.services.timeframe_controller import TimeframeController
from stockchart.utils.config import config
from stockchart.utils.event_store import EventStore
from stockchart.utils.logger import StructuredLogger
from stockchart.utils.metrics import MetricsCalculator

logger = StructuredLogger("main", config.logging.log_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration, then run the timeframe controller for the session."""
    # Startup
    try:
        config.validate()
    except ValueError as e:
        logger.critical("Configuration error", exception=e)
        raise

    event_store = EventStore(max_size=config.logging.event_store_max_size)
    controller = TimeframeController(
        source=CandleSourceAdapter(event_store=event_store),
        event_store=event_store,
    )
    app.state.event_store = event_store
    app.state.metrics = MetricsCalculator(event_store)
    app.state.controller = controller

    controller.start()
    logger.info(
        "Chart controller started",
        context={
            "instrument": controller.instrument,
            "granularity": controller.default_granularity.value,
        },
    )
    yield
    # Shutdown
    await controller.shutdown()
    app.state.controller = None


# Create FastAPI app
app = FastAPI(
    title="Stock Chart Feed",
    description="Windowed closing-price series for a single instrument",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Include API routes
app.include_router(router, prefix="/api", tags=["chart"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
