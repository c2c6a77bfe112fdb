# app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.middleware import RequestIdMiddleware
from app.db import Base, engine
from app.config import settings
from app import models  # noqa: F401  registers tables for create_all()

from app.routers import (
    auth, orders, checks, inventory, menu, employees, reports,
    restaurants, reservations, notifications,
)
from app.util.http import invalid_field_message

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Dine API", version="0.1.0")

@app.on_event("startup")
def init_db():
    Base.metadata.create_all(bind=engine)
    logger.info("database ready (env=%s)", settings.APP_ENV)

# Malformed bodies are a 400 with the offending field, not FastAPI's 422
@app.exception_handler(RequestValidationError)
async def bad_request(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": invalid_field_message(exc.errors())})

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(orders.router)
app.include_router(checks.router)
app.include_router(inventory.router)
app.include_router(menu.router)
app.include_router(employees.router)
app.include_router(reports.router)
app.include_router(restaurants.router)
app.include_router(reservations.router)
app.include_router(notifications.router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
