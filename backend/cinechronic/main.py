from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.responses import Response
import logging
import time
import traceback

from cinechronic.core.config import settings
from cinechronic.core.database import check_db, init_db
from cinechronic.services.recommendation_cache import DailyRecommendationCache
from cinechronic.utils.logger import setup_logging
from cinechronic.utils.timezone import utc_now

from cinechronic.api import auth, movies, playlists, festivals, ratings, recommendations

logger = logging.getLogger(__name__)

app = FastAPI(title="CineChronic API", version="1.0.0")

# Add GZip compression middleware for better transfer performance
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide daily batch; routes reach it through a dependency
app.state.recommendation_cache = DailyRecommendationCache(
    generation_hour=settings.daily_generation_hour,
    tz_name=settings.recommendation_timezone,
)

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(movies.router, prefix="/api/movies", tags=["Movies"])
app.include_router(playlists.router, prefix="/api/playlists", tags=["Playlists"])
app.include_router(festivals.router, prefix="/api/festivals", tags=["Festivals"])
app.include_router(ratings.router, prefix="/api/ratings", tags=["Ratings"])
app.include_router(recommendations.router, prefix="/api/recommendations", tags=["Recommendations"])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response: Response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed payloads are client errors (400), not 422."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"detail": message, "errors": _jsonable(errors)})


def _jsonable(errors):
    # ctx may hold exception instances
    return [{k: (str(v) if k == "ctx" else v) for k, v in err.items() if k != "input"} for err in errors]


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    content = {"detail": "Something went wrong!", "error": str(exc)}
    if not settings.is_production:
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=content)


@app.on_event("startup")
async def startup_event():
    setup_logging()
    await init_db()
    logger.info(f"CineChronic API starting ({settings.environment})")


@app.get("/")
def root():
    return {"status": "CineChronic API Running"}


@app.get("/health")
async def health_check():
    """Simple health check endpoint for load balancers/monitoring"""
    try:
        check_db()
        return {"status": "ok", "timestamp": utc_now().isoformat()}
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Service unhealthy: {str(e)}")


def run():
    import uvicorn

    uvicorn.run("cinechronic.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
