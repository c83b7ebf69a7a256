from typing import Any, Dict, List, Optional, Tuple
import logging
import re
from datetime import datetime, timezone

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument

from .config import Settings
from .errors import AvailabilityConflictError, NotFoundError

logger = logging.getLogger(__name__)

LESSONS = "lessons"
ORDERS = "orders"

# Bounded so a document whose availability is not a number cannot spin forever.
MAX_ADJUST_ATTEMPTS = 5

# BSON integers are signed 64-bit.
INT64_MAX = 2 ** 63 - 1


async def connect(settings: Settings) -> Tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    """Open the client and make sure the server answers before serving requests."""
    client = AsyncIOMotorClient(settings.database_url)
    try:
        await client.admin.command("ping")
    except Exception:
        client.close()
        raise
    logger.info("Connected to MongoDB database %s", settings.database_name)
    return client, client[settings.database_name]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _object_id(value: str) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["_id"] = str(doc["_id"])  # stringify ObjectId
    return doc


async def _collect(cursor) -> List[Dict[str, Any]]:
    docs = []
    async for d in cursor:
        docs.append(_serialize(d))
    return docs


class LessonStore:
    """Lesson documents: subject, location, price, availability."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[LESSONS]

    async def list_all(self) -> List[Dict[str, Any]]:
        return await _collect(self.collection.find({}))

    async def get(self, lesson_id: str) -> Dict[str, Any]:
        oid = _object_id(lesson_id)
        doc = await self.collection.find_one({"_id": oid}) if oid is not None else None
        if doc is None:
            raise NotFoundError("Lesson", lesson_id)
        return _serialize(doc)

    async def create(self, subject: str, location: str, price: Any, availability: Any) -> Dict[str, Any]:
        now = _now()
        payload = {
            "subject": subject,
            "location": location,
            "price": float(price),
            "availability": int(availability),
            "created_at": now,
            "updated_at": now,
        }
        res = await self.collection.insert_one(payload)
        payload["_id"] = str(res.inserted_id)
        return payload

    async def count(self) -> int:
        return await self.collection.count_documents({})

    async def insert_many(self, lessons: List[Dict[str, Any]]) -> int:
        now = _now()
        res = await self.collection.insert_many(
            [{**lesson, "created_at": now, "updated_at": now} for lesson in lessons]
        )
        return len(res.inserted_ids)

    async def adjust_availability(self, lesson_id: str, delta: int) -> Dict[str, Any]:
        """
        Add ``delta`` to a lesson's availability, clamping the result at zero.

        Every write is a single conditional update, so concurrent callers
        never lose each other's changes. A negative delta larger than the
        current availability sets it to exactly zero.

        Raises:
            NotFoundError: If the lesson does not exist
            AvailabilityConflictError: If no update could be applied
        """
        oid = _object_id(lesson_id)
        if oid is None:
            raise NotFoundError("Lesson", lesson_id)

        # Stored counts fit in int64, so clamping to what BSON can encode keeps max(0, a + delta).
        delta = max(-INT64_MAX, min(INT64_MAX, int(delta)))
        if delta >= 0:
            updates = [({"_id": oid}, {"$inc": {"availability": delta}})]
        else:
            updates = [
                ({"_id": oid, "availability": {"$gte": -delta}}, {"$inc": {"availability": delta}}),
                ({"_id": oid, "availability": {"$lt": -delta}}, {"$set": {"availability": 0}}),
            ]

        for _ in range(MAX_ADJUST_ATTEMPTS):
            for filter_q, update in updates:
                stamped = {**update, "$set": {**update.get("$set", {}), "updated_at": _now()}}
                doc = await self.collection.find_one_and_update(
                    filter_q, stamped, return_document=ReturnDocument.AFTER
                )
                if doc is not None:
                    return _serialize(doc)
            if await self.collection.find_one({"_id": oid}, {"_id": 1}) is None:
                raise NotFoundError("Lesson", lesson_id)

        raise AvailabilityConflictError(f"Could not adjust availability of lesson {lesson_id}")

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """Lessons whose subject or location contains ``query``, ignoring case."""
        pattern = {"$regex": re.escape(query), "$options": "i"}
        return await _collect(self.collection.find({"$or": [{"subject": pattern}, {"location": pattern}]}))


class OrderStore:
    """Order documents. Immutable once created."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[ORDERS]

    async def list_all(self) -> List[Dict[str, Any]]:
        # _id breaks ties between orders stamped in the same instant
        cursor = self.collection.find({}, sort=[("created_at", -1), ("_id", -1)])
        return await _collect(cursor)

    async def get(self, order_id: str) -> Dict[str, Any]:
        oid = _object_id(order_id)
        doc = await self.collection.find_one({"_id": oid}) if oid is not None else None
        if doc is None:
            raise NotFoundError("Order", order_id)
        return _serialize(doc)

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if not data.get("name") or not data.get("phone") or not data.get("lessons"):
            raise ValueError("An order needs a name, a phone and at least one lesson")
        payload = {**data, "total": float(data.get("total", 0)), "created_at": _now()}
        res = await self.collection.insert_one(payload)
        payload["_id"] = str(res.inserted_id)
        return payload
