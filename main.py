import traceback

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

import models  # noqa: F401  (registers every table on Base.metadata)
import settings
from database import Base, engine
from errors import HaladorError
from routes import (
    profiles,
    trips,
    trip_requests,
    reviews,
    subscriptions,
)
from services.notifications import register_notification_relay
from utils.logger import setup_api_logger

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Halador API (Perfiles, Viajes, Solicitudes, Reseñas, Suscripciones)")

# setup file logger for API failures
api_logger = setup_api_logger(settings.LOG_PATH)

register_notification_relay()


async def _request_body(request) -> str:
    try:
        body = await request.body()
    except Exception:
        body = b""
    return body.decode('utf-8', errors='replace')


@app.exception_handler(HaladorError)
async def domain_exception_handler(request, exc: HaladorError):
    api_logger.warning("%s on %s %s | status=%s | body=%s | detail=%s",
                       exc.kind, request.method, request.url.path, exc.status_code,
                       await _request_body(request), exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "error": exc.kind})


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    api_logger.warning("HTTPException on %s %s | status=%s | body=%s | detail=%s",
                       request.method, request.url.path, exc.status_code,
                       await _request_body(request), str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    # log request info and stacktrace
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    api_logger.error("Unhandled exception on %s %s | body=%s | error=%s\n%s",
                     request.method, request.url.path, await _request_body(request), str(exc), tb)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


app.include_router(profiles.router)
app.include_router(profiles.session_router)
app.include_router(trips.router)
app.include_router(trip_requests.router)
app.include_router(reviews.router)
app.include_router(reviews.history_router)
app.include_router(subscriptions.router)
app.include_router(subscriptions.admin_router)
