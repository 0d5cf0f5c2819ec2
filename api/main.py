import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel

from offshore import __version__
from offshore.db import create_all
from offshore.errors import OffshoreError, ValidationFailure
from offshore.settings import API_DEBUG, settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_all()
    yield


app = FastAPI(
    title="Offshore Incorporation API",
    version=__version__,
    description="Onboarding → incorporation → pricing → payment → KYC across five jurisdictions.",
    debug=API_DEBUG,
    lifespan=lifespan,
)

# --- CORS ----------------------------------------------------------
origins = [
    settings.app_url,
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-User-Id", "X-User-Email", "X-Cron-Secret"],
)


# --- Error mapping -------------------------------------------------
@app.exception_handler(OffshoreError)
async def offshore_error_handler(request: Request, exc: OffshoreError):
    body = {"detail": str(exc)}
    if isinstance(exc, ValidationFailure):
        body["missing"] = [to_camel(f) for f in exc.missing]
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content=body)


# --- Include Routers ----------------------------------------------------------
from .company import router as company_router
from .incorporation import router as incorporation_router
from .onboarding import router as onboarding_router
from .resume import router as resume_router

app.include_router(resume_router)
app.include_router(incorporation_router)
app.include_router(company_router)
app.include_router(onboarding_router)


# ---------- health-check ----------
@app.get("/")
def root():
    return {"status": "ok", "msg": "Offshore incorporation API is alive"}
