# therapist dashboard api
# fastapi app with async mongodb, jwt auth, and the dashboard aggregator

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from therapist_dashboard.config import settings
from therapist_dashboard.services.db import db
from therapist_dashboard.routers import auth, dashboard

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb. shutdown: close connection."""
    logger.info("Starting therapist dashboard backend...")
    await db.connect()
    yield
    logger.info("Shutting down therapist dashboard backend...")
    await db.close()


app = FastAPI(
    title="Therapist Dashboard API",
    description="Dashboard aggregation and therapist registration backed by MongoDB",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(dashboard.router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "therapist-dashboard-api"}
