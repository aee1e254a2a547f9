from fastapi import FastAPI

from src.web.routers.ingestion import router as ingestion_router

def register_routers(app: FastAPI):
    """Register all routers with the application."""
    app.include_router(ingestion_router)
