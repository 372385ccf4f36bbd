import logging
from contextlib import asynccontextmanager

import uvicorn

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from billable.config import settings
from billable.db import ensure_indexes
from billable.exceptions import BillableError
from billable.routers import analytics, calendar, time_entries, timer

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

PROD_MODE = settings.PRODUCTION_MODE


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.STORAGE_BACKEND == "mongo":
        await ensure_indexes()
    yield


app = FastAPI(title=settings.PROJECT_TITLE, lifespan=lifespan)

app.include_router(timer.router, prefix="/timer", tags=["timer"])
app.include_router(time_entries.router, prefix="/time-entries", tags=["time_entries"])
app.include_router(calendar.router, prefix="/calendar", tags=["calendar"])
app.include_router(analytics.router, prefix="/analytics", tags=["analytics"])

# Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BillableError)
async def billable_error_handler(request: Request, exc: BillableError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.get("/")
def index():
    return {"message": "Hello Billable"}


if __name__ == "__main__":
    if PROD_MODE == True:
        # Run Uvicorn without reload in production
        uvicorn.run("billable.main:app", host="0.0.0.0", port=settings.PORT, reload=False)

    else:
        # Run Uvicorn with reload=True in development mode
        uvicorn.run("billable.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
