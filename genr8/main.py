"""
Main FastAPI application for the GENR8 gateway.
Serves generation, payment, buyback and admin refund endpoints plus health and metrics.
"""
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from genr8.core.config import settings
from genr8.core.logging import configure_logging
from genr8.api.routes import buybacks, generate, health, models, payment, refunds
from genr8.utils.metrics import router as metrics_router


configure_logging()

app = FastAPI(
    title="GENR8 Gateway",
    description="Payment-gated AI generation with batched token buybacks",
    version="1.0.0",
)

# CORS
origins = settings.cors_origins_list
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["WWW-Authenticate"],
)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(models.router)
app.include_router(generate.router)
app.include_router(payment.router)
app.include_router(buybacks.router)
app.include_router(refunds.router)
app.include_router(metrics_router)

# Re-hosted media
os.makedirs(settings.storage_base_path, exist_ok=True)
app.mount("/media", StaticFiles(directory=settings.storage_base_path), name="media")
