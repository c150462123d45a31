import sys

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

import settings
from db import StoreDep, StoreUnavailable, get_store
from routers import auth, fundraisers, machine_locations, machines, redemptions


def configure_logging() -> None:
    logger.remove()
    logger.add(
        sink=sys.stderr,
        level=settings.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
               "<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - "
               "<level>{message}</level>",
        colorize=True,
    )


configure_logging()

app = FastAPI(title="Eizer")


@app.on_event("startup")
def on_startup() -> None:
    get_store()


@app.exception_handler(StoreUnavailable)
def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.warning("{} {} failed: {}", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
def health(store: StoreDep):
    return {"status": "ok", "database": store.available}


app.include_router(auth.router)
app.include_router(fundraisers.router)
app.include_router(machine_locations.router)
app.include_router(machines.router)
app.include_router(redemptions.router)
