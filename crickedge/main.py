"""
CrickEdge Auction API - FastAPI application wiring routers, error handlers and the round timer.

Run with:  uvicorn crickedge.main:app --reload
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crickedge import config
from crickedge.database import create_db_and_tables, engine
from crickedge.errors import AuctionError
from crickedge.routers import player_pool, push_rules, rounds, sessions
from crickedge.timer import AuctionTimer

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    timer = None
    if config.AUCTION_TIMER_ENABLED:
        timer = AuctionTimer(engine)
        timer.start()
    app.state.timer = timer
    yield
    if timer is not None:
        timer.stop()


app = FastAPI(title="CrickEdge Auction API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuctionError)
async def auction_error_handler(request: Request, exc: AuctionError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # ctx may hold exception instances that do not serialise
    details = [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"error": "VALIDATION_ERROR", "detail": "Invalid request.", "errors": details}),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "INTERNAL_ERROR", "detail": "Internal server error."})


app.include_router(player_pool.router)
app.include_router(sessions.router)
app.include_router(rounds.router)
app.include_router(push_rules.router)


@app.get("/healthz")
def healthz():
    return {"status": "ok"}
