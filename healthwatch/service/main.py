import asyncio
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.config import Config
from ..core.enums import IndicatorKey, Status
from ..core.exceptions import UnknownIndicatorError
from ..core.models import AggregatedReport, IndicatorResult
from ..monitoring.aggregator import HealthAggregator
from ..monitoring.metrics import HealthMetrics
from ..utils.logger import LoggerSetup
from ..utils.time import get_current_datetime

logger = LoggerSetup.setup(__name__)

# Service instances
aggregator: HealthAggregator | None = None
metrics = HealthMetrics()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Service lifecycle manager"""
    global aggregator
    created = False

    try:
        if aggregator is None:
            config = Config()
            LoggerSetup.configure(config.logging)
            aggregator = HealthAggregator(config.health)
            created = True
            logger.info(f"Health service started with indicators: {', '.join(aggregator.indicator_keys)}")

        yield  # Service is running

    finally:
        if created:
            aggregator = None

# Initialize FastAPI app
app = FastAPI(
    title="Healthwatch",
    description="Resource health checks for memory and disk",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def _get_aggregator() -> HealthAggregator:
    if aggregator is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return aggregator

def _report_response(report: AggregatedReport) -> JSONResponse:
    """Critical reports map to 503"""
    status_code = 503 if report.overall_status == Status.CRITICAL else 200
    return JSONResponse(status_code=status_code, content=report.model_dump(mode='json'))

def _indicator_response(result: IndicatorResult) -> JSONResponse:
    status_code = 503 if result.status.is_failing() else 200
    return JSONResponse(status_code=status_code, content=result.model_dump(mode='json'))

async def _timed(check) -> AggregatedReport:
    started = time.perf_counter()
    report = await check
    metrics.update(report, time.perf_counter() - started)
    return report

@app.get("/health")
async def health_check():
    """Check all indicators"""
    report = await _timed(_get_aggregator().check_all())
    return _report_response(report)

@app.get("/health/detailed")
async def detailed_health():
    """Check all indicators with recommendations, uptime and system information"""
    report = await _timed(_get_aggregator().detailed_analysis())
    return _report_response(report)

@app.get("/health/live")
async def liveness():
    """Liveness probe"""
    return {
        "status": "ok",
        "timestamp": get_current_datetime().isoformat()
    }

@app.get("/health/ready")
async def readiness():
    """Readiness probe: process memory, host memory and load average"""
    report = _get_aggregator().readiness()
    return JSONResponse(
        status_code=200 if report.ready else 503,
        content=report.model_dump(mode='json')
    )

@app.get("/health/memory")
async def memory_health():
    """Memory indicator"""
    return _indicator_response(await _get_aggregator().check_indicator(IndicatorKey.MEMORY))

@app.get("/health/disk")
async def disk_health():
    """Disk indicators (root, temp and log directory)"""
    service = _get_aggregator()
    results = await asyncio.gather(*(service.check_indicator(key) for key in IndicatorKey.disk_keys()))
    return _report_response(service.aggregate(list(results)))

@app.get("/health/indicators/{key}")
async def indicator_health(key: str):
    """Any single indicator by key"""
    try:
        result = await _get_aggregator().check_indicator(key)
    except UnknownIndicatorError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _indicator_response(result)

@app.get("/health/uptime")
async def uptime():
    """Application, process and system uptime"""
    return _get_aggregator().uptime().model_dump(mode='json')

@app.get("/health/system")
async def system_info():
    """Host information"""
    return _get_aggregator().system_info().model_dump(mode='json')

@app.get("/metrics")
async def get_metrics():
    """Get Prometheus metrics"""
    return Response(content=metrics.generate(), media_type=CONTENT_TYPE_LATEST)

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )

def run() -> None:
    """Run the service with uvicorn"""
    import uvicorn
    api_config = Config().api
    uvicorn.run(
        "healthwatch.service.main:app",
        host=api_config.host,
        port=api_config.port
    )

if __name__ == "__main__":
    run()
