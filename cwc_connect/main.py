from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cwc_connect.api.router import api_router
from cwc_connect.core.config import settings
from cwc_connect.core.dependencies import sync_scheduler
from cwc_connect.services.employee_store import employee_store
from cwc_connect.services.reply_generator import reply_generator
from cwc_connect.services.roster_api_client import roster_api_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    try:
        await employee_store.initialize(settings)
    except Exception:
        logger.exception("Failed to initialize EmployeeStore — continuing without DB")
    try:
        await roster_api_client.initialize(settings)
    except Exception:
        logger.exception("Failed to initialize RosterApiClient — continuing with spreadsheets only")
    try:
        await reply_generator.initialize(settings)
    except Exception:
        logger.exception("Failed to initialize ReplyGenerator — continuing with direct replies")

    if employee_store.initialized:
        sync_scheduler.start()
    else:
        logger.warning("Employee sync not scheduled: no database configured")

    yield
    await sync_scheduler.stop()
    await employee_store.close()
    await roster_api_client.close()
    await reply_generator.close()


app = FastAPI(
    title="CWC Connect API",
    description="Employee directory lookup and chat search",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Origin", "Accept"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "CWC Connect API"}


def run() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logger.info("Server running on port %d", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
