from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.shared.core.config import settings
from app.shared.core.logging import setup_logging
from app.shared.middleware.correlation import CorrelationIdMiddleware
from app.shared.db.session import DATABASE_URL, init_models
from app.shared.utils.http_client import shutdown_http_client
from app.modules.column_triggers.api import trigger_endpoints

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if DATABASE_URL.startswith("sqlite"):
        await init_models()
    yield
    await shutdown_http_client()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Correlation ID for log tracing
app.add_middleware(CorrelationIdMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CORS_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Column triggers / automated messages router
app.include_router(
    trigger_endpoints.router,
    prefix=f"{settings.API_V1_STR}/column-triggers",
    tags=["Column Triggers"]
)

@app.get("/")
def root():
    return {"message": f"{settings.PROJECT_NAME} API is running"}
