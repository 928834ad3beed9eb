# salon/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salon.config import settings
from salon.db import create_db_and_tables
from salon.errors import register_error_handlers
from salon.logging_setup import setup_logging
from salon.routers import (
    appointments_routes,
    auth_routes,
    backup_routes,
    booking_links_routes,
    business_hours_routes,
    customers_routes,
    dashboard_routes,
    finance_routes,
    loyalty_routes,
    notifications_routes,
    services_routes,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_file)
    create_db_and_tables()
    logger.info("Salon API ready (database: %s)", settings.database_url.split("://")[0])
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Salon API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(auth_routes.router)
    app.include_router(customers_routes.router)
    app.include_router(services_routes.router)
    app.include_router(business_hours_routes.router)
    app.include_router(appointments_routes.router)
    app.include_router(finance_routes.router)
    app.include_router(loyalty_routes.router)
    app.include_router(booking_links_routes.router)
    app.include_router(booking_links_routes.public_router)
    app.include_router(dashboard_routes.router)
    app.include_router(notifications_routes.router)
    app.include_router(backup_routes.router)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
