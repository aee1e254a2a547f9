from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
import contextlib
import logging

from src.core.config import settings
from src.core.database import init_db
# Registers the ingestion tables on Base before create_all
import src.ingestion.database  # noqa: F401

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize Database Tables
    await init_db()
    logger.info("Database tables ready")
    yield


app = FastAPI(
    title="Newsroom Ingestion",
    description="API for organization news discovery and ingestion",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Ingestion", "description": "URL discovery, discovery batches and article ingestion"},
    ]
)

from src.web.routers import register_routers

register_routers(app)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"], # Vite Dev Server
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", include_in_schema=False)
async def root():
    return RedirectResponse(url="/docs")


@app.get("/health", include_in_schema=False)
async def health():
    return {"status": "ok"}
