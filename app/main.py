from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time

from app import config
from app.routers import health, betting_trends
from app.utils.logging import setup_logging, request_logger

logger = setup_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)

VERSION = "1.0.0"


app = FastAPI(
    title="CFB Betting Trends",
    description="""
# CFB Betting Trends API

Season-level betting trends for FBS college football, computed from
College Football Data (CFBD) game results and consensus betting lines.

## Trends

- **Straight Up**: home/away, favorite/underdog records for every completed game
- **Against The Spread**: cover records for games with a posted spread (exact-number pushes)
- **Over/Under**: totals results split by overtime and regulation games
- **Spread Ranges**: favorite/underdog win rates by spread size (3 / 7 / 14)
- **Situational**: blowouts (21+ margin), ranked, primetime and rivalry games

## Configuration

Set `CFBD_API_KEY` to a College Football Data API key.
    """,
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Health", "description": "Health check endpoints"},
        {"name": "Betting Trends", "description": "Straight-up, ATS and over/under trends"},
    ]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
    expose_headers=["X-Process-Time"],
)

app.include_router(health.router)
app.include_router(betting_trends.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    process_time = time.time() - start_time
    process_time_ms = process_time * 1000

    client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip() or (
        request.client.host if request.client else "unknown"
    )

    if process_time > 1.0:
        logger.warning(f"Slow request: {request.method} {request.url.path} took {process_time:.2f}s")

    request_logger.log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=process_time_ms,
        client_ip=client_ip,
        query=request.url.query or None
    )

    response.headers["X-Process-Time"] = str(round(process_time_ms, 2))

    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip() or (
        request.client.host if request.client else "unknown"
    )

    request_logger.log_error(
        message=f"Unhandled exception: {type(exc).__name__}",
        exception=exc,
        path=request.url.path,
        client_ip=client_ip
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "detail": "An internal error occurred",
            "type": type(exc).__name__
        }
    )


@app.get("/", tags=["Health"])
def root():
    return {
        "name": "CFB Betting Trends",
        "version": VERSION,
        "status": "running",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": [
            "/betting-trends",
            "/betting-trends/conferences",
            "/betting-trends/cache/stats",
        ],
    }
