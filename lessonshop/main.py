import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from . import __version__
from .config import Settings
from .database import LessonStore, OrderStore, connect
from .errors import AvailabilityConflictError, NotFoundError, register_error_handlers
from .logging_config import setup_logging
from .schemas import AvailabilityChange, LessonCreate, OrderCreate
from .seed import seed_lessons

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[AsyncIOMotorDatabase] = None) -> FastAPI:
    """
    Build the API application.

    Without ``database`` the lifespan connects using ``settings`` and a failed
    connection aborts startup. An injected database is used as is and left
    open on shutdown.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        db = database
        if db is None:
            try:
                client, db = await connect(settings)
            except Exception:
                logger.critical("Failed to connect to MongoDB at startup", exc_info=True)
                raise
        app.state.lessons = LessonStore(db)
        app.state.orders = OrderStore(db)
        if settings.seed_sample_data:
            await seed_lessons(app.state.lessons)
        yield
        if client is not None:
            client.close()
            logger.info("MongoDB connection closed")

    app = FastAPI(title="Lesson Management API", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    _add_routes(app)
    return app


def get_lesson_store(request: Request) -> LessonStore:
    return request.app.state.lessons


def get_order_store(request: Request) -> OrderStore:
    return request.app.state.orders


def _add_routes(app: FastAPI) -> None:
    @app.get("/")
    async def read_root():
        return {
            "message": "Lesson Management API",
            "version": __version__,
            "endpoints": {"lessons": "/api/lessons", "orders": "/api/orders"},
        }

    # ------------------------------
    # Lessons
    # ------------------------------
    @app.get("/api/lessons", response_model=List[dict])
    async def list_lessons(store: LessonStore = Depends(get_lesson_store)):
        try:
            return await store.list_all()
        except PyMongoError:
            logger.exception("Error fetching lessons")
            raise HTTPException(status_code=500, detail="Failed to fetch lessons")

    @app.get("/api/lessons/search/{query}", response_model=List[dict])
    async def search_lessons(query: str, store: LessonStore = Depends(get_lesson_store)):
        try:
            return await store.search(query)
        except PyMongoError:
            logger.exception("Error searching lessons for %r", query)
            raise HTTPException(status_code=500, detail="Failed to search lessons")

    @app.get("/api/lessons/{lesson_id}", response_model=dict)
    async def get_lesson(lesson_id: str, store: LessonStore = Depends(get_lesson_store)):
        try:
            return await store.get(lesson_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except PyMongoError:
            logger.exception("Error fetching lesson %s", lesson_id)
            raise HTTPException(status_code=500, detail="Failed to fetch lesson")

    @app.post("/api/lessons", status_code=201, response_model=dict)
    async def create_lesson(lesson: LessonCreate, store: LessonStore = Depends(get_lesson_store)):
        try:
            return await store.create(**lesson.model_dump())
        except PyMongoError:
            logger.exception("Error creating lesson")
            raise HTTPException(status_code=500, detail="Failed to create lesson")

    @app.put("/api/lessons/{lesson_id}/availability", response_model=dict)
    async def update_availability(
        lesson_id: str, payload: AvailabilityChange, store: LessonStore = Depends(get_lesson_store)
    ):
        try:
            return await store.adjust_availability(lesson_id, payload.change)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except (PyMongoError, AvailabilityConflictError):
            logger.exception("Error updating availability of lesson %s", lesson_id)
            raise HTTPException(status_code=500, detail="Failed to update lesson availability")

    # ------------------------------
    # Orders
    # ------------------------------
    @app.get("/api/orders", response_model=List[dict])
    async def list_orders(store: OrderStore = Depends(get_order_store)):
        try:
            return await store.list_all()
        except PyMongoError:
            logger.exception("Error fetching orders")
            raise HTTPException(status_code=500, detail="Failed to fetch orders")

    @app.post("/api/orders", status_code=201, response_model=dict)
    async def create_order(order: OrderCreate, store: OrderStore = Depends(get_order_store)):
        try:
            return await store.create(order.to_document())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except PyMongoError:
            logger.exception("Error creating order")
            raise HTTPException(status_code=500, detail="Failed to create order")

    @app.get("/api/orders/{order_id}", response_model=dict)
    async def get_order(order_id: str, store: OrderStore = Depends(get_order_store)):
        try:
            return await store.get(order_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except PyMongoError:
            logger.exception("Error fetching order %s", order_id)
            raise HTTPException(status_code=500, detail="Failed to fetch order")


def build_app() -> FastAPI:
    """Entry point for ``uvicorn --factory lessonshop.main:build_app``."""
    settings = Settings()
    settings.validate()
    setup_logging(settings.log_level)
    return create_app(settings)
