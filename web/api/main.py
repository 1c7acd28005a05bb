"""FastAPI festival API - programs, results workflow, registrations, public scoreboard."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from festival.services.bootstrap import bootstrap
from festival.services.errors import ErrorKind, FestivalError
from web.auth import hash_password

from web.api.routes import router as api_router
from web.api.auth_routes import router as auth_router
from web.api.results_routes import router as results_router
from web.api.registration_routes import router as registration_router
from web.api.notification_routes import router as notification_router
from web.api.settings_routes import router as settings_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("festival.api")

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_SUBMISSION: 409,
    ErrorKind.DUPLICATE: 409,
    ErrorKind.INVALID_CANDIDATE: 400,
    ErrorKind.INVALID_PENALTY_TARGET: 400,
    ErrorKind.VALIDATION: 400,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await bootstrap(hash_password)
    yield


app = FastAPI(title="Festival Manager API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)
app.include_router(auth_router)
app.include_router(results_router)
app.include_router(registration_router)
app.include_router(notification_router)
app.include_router(settings_router)


@app.exception_handler(FestivalError)
async def festival_error_handler(request: Request, exc: FestivalError):
    status_code = ERROR_STATUS.get(exc.kind, 400)
    logger.info("%s %s -> %s (%s): %s", request.method, request.url.path, status_code, exc.kind.value, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.get("/api/health")
async def health():
    return {"status": "ok"}
