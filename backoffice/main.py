from fastapi import FastAPI
from contextlib import asynccontextmanager
from backoffice.api.v1 import routers
import logging
from backoffice.core.config import settings
from backoffice.core.exceptions import register_exception_handlers
from backoffice.db.session import connect_db_pool, close_db_pool

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_db_pool()
    yield
    await close_db_pool()

app = FastAPI(
    title="Backoffice API",
    description="Business management backend: clients, projects, budgets, tasks and calendar",
    version="1.0.0",
    lifespan=lifespan
)

register_exception_handlers(app)
app.include_router(routers.router)


@app.get("/")
async def root():
    return {"message": "Welcome to Backoffice API"}


@app.get("/healthz", tags=["health"])
async def healthz() -> dict[str, str]:
    return {"status": "ok"}
