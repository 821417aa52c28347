from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from pinchat.core.config import settings
from pinchat.core.error_handler import (
    custom_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)
from pinchat.core.exceptions import BaseAPIException
from pinchat.core.log_config import logger, setup_logging

from pinchat.api.auth import router as auth_router
from pinchat.api.users import router as user_router
from pinchat.api.rooms import router as room_router
from pinchat.api.messages import router as message_router
from pinchat.api.images import router as image_router
from pinchat.globals import session_store
from pinchat.database.postgres import dispose_db, initialize_db
from pinchat.utils.timing_middleware import TimingMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await initialize_db()
    await session_store.connect()
    logger.info("pinchat started")
    yield
    await session_store.disconnect()
    await dispose_db()

app = FastAPI(title="pinchat", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(BaseAPIException, custom_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)
app.add_middleware(TimingMiddleware)

app.include_router(auth_router)
app.include_router(user_router)
app.include_router(room_router)
app.include_router(message_router)
app.include_router(image_router)
