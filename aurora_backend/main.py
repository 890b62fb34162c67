# aurora_backend/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aurora_backend.core import config
from aurora_backend.core.errors import register_exception_handlers
from aurora_backend.routers import admin_routes, auth_routes, public_routes

logging.basicConfig(level=config.LOG_LEVEL)


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"API {config.CLINIC_NAME}",
        description="Backend for the clinic website and admin back-office",
        version="1.0.0",
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # --- Routers ---
    # 1. Public site (pages + booking form)
    app.include_router(public_routes.router, prefix="/api/v1")
    # 2. Login, logout and first-admin registration
    app.include_router(auth_routes.router, prefix="/api/v1")
    # 3. Protected admin back-office
    app.include_router(admin_routes.router, prefix="/api/v1")

    @app.get("/", tags=["Root"])
    def read_root():
        """Health check."""
        return {"status": f"API {config.CLINIC_NAME} is online"}

    return app


app = create_app()
