import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from app.api.v1.health import router as health_router
from app.api.v1.candidates import router as candidates_router
from app.api.v1.jobs import router as jobs_router
from app.api.v1.analytics import router as analytics_router
from app.core.rate_limit import limiter
from app.core.config import settings
from dotenv import load_dotenv
from app.core.lifespan import lifespan

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

OPENAPI_TAGS = [
    {"name": "Health", "description": "Liveness and configured LLM providers."},
    {"name": "Candidates", "description": "Score one application and read back its guarded analysis."},
    {"name": "Jobs", "description": "Comparative ranking, ranking status and private directives."},
    {"name": "Analytics", "description": "LLM call audit summaries."},
]

app = FastAPI(
    title="Application Scoring API",
    description="LLM-assisted scoring and comparative ranking of job applications.",
    version="0.1.0",
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type", "X-API-Key"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(candidates_router, prefix="/v1", tags=["Candidates"])
app.include_router(jobs_router, prefix="/v1", tags=["Jobs"])
app.include_router(analytics_router, prefix="/v1", tags=["Analytics"])
