"""
Kaza CRM commission service.

Owns the commission rules of the sales CRM: broker and manager tier tables,
sale recording with stamped commissions, the manager period calculation,
the what-if simulator and the live sales change stream.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from kaza import __version__
from kaza.api import api_router
from kaza.config import settings
from kaza.db import get_db_context
from kaza.models import Profile, ProfileRole, SystemSetting
from kaza.services.errors import (
    CommissionError,
    InvalidPeriodError,
    NotFoundError,
    PermissionDeniedError,
    TierConflictError,
    TierValidationError,
)
from kaza.services.periods import PERIOD_SETTING_KEY

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Looked up along the exception's MRO, so subclasses must come first
ERROR_STATUS = {
    TierConflictError: status.HTTP_409_CONFLICT,
    TierValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidPeriodError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
}


async def bootstrap(db: AsyncSession) -> None:
    """First-run data: a director to administer tiers, and the default period type."""
    has_director = await db.scalar(
        select(Profile.id).where(Profile.role == ProfileRole.DIRECTOR).limit(1)
    )
    if has_director is None:
        db.add(
            Profile(
                display_name=settings.director_name,
                email=settings.director_email,
                role=ProfileRole.DIRECTOR,
                is_active=True,
            )
        )
        logger.info(f"Bootstrap director created: {settings.director_email}")

    if await db.get(SystemSetting, PERIOD_SETTING_KEY) is None:
        db.add(SystemSetting.create(PERIOD_SETTING_KEY, settings.default_period_type))
        logger.info(f"Commission period set to {settings.default_period_type}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Kaza CRM {__version__}")
    async with get_db_context() as db:
        await bootstrap(db)
    yield
    logger.info("Kaza CRM stopped")


app = FastAPI(
    title="Kaza CRM",
    description="Real-estate sales CRM with tiered broker and manager commissions",
    version=__version__,
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)


@app.exception_handler(CommissionError)
async def commission_error_handler(request: Request, exc: CommissionError):
    code = next(
        (ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS),
        status.HTTP_400_BAD_REQUEST,
    )
    return JSONResponse(status_code=code, content={"detail": str(exc)})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Operation failed, please try again"},
    )


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "kaza.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
