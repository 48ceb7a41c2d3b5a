"""Remedial Assessments - FastAPI app entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from remedial.core.config import get_settings
from remedial.core.errors import register_exception_handlers
from remedial.core.logging import configure_logging
from remedial.db.base import Base
from remedial.db.session import engine, AsyncSessionLocal
from remedial.routers import assessments
from remedial.services.seeding import seed_reference_data

settings = get_settings()
log = logging.getLogger("remedial")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.seed_reference_data:
        async with AsyncSessionLocal() as db:
            await seed_reference_data(db)

    log.info("%s ready", settings.app_name)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Quizzes, attempts and auto-grading for school remedial classes",
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(assessments.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
