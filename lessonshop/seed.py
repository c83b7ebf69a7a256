import logging

from pymongo.errors import PyMongoError

from .database import LessonStore

logger = logging.getLogger(__name__)

SAMPLE_LESSONS = [
    {"subject": "Mathematics", "location": "London", "price": 25.0, "availability": 5},
    {"subject": "English", "location": "Manchester", "price": 20.0, "availability": 3},
    {"subject": "Science", "location": "Birmingham", "price": 30.0, "availability": 8},
    {"subject": "History", "location": "Liverpool", "price": 22.0, "availability": 2},
    {"subject": "Geography", "location": "Leeds", "price": 18.0, "availability": 6},
    {"subject": "Art", "location": "Bristol", "price": 28.0, "availability": 4},
    {"subject": "Music", "location": "Edinburgh", "price": 35.0, "availability": 3},
    {"subject": "Physics", "location": "Glasgow", "price": 32.0, "availability": 7},
    {"subject": "Chemistry", "location": "Cardiff", "price": 29.0, "availability": 5},
    {"subject": "Biology", "location": "Belfast", "price": 27.0, "availability": 4},
]


async def seed_lessons(store: LessonStore) -> int:
    """Insert the sample lessons when the collection is empty. Returns how many were inserted."""
    try:
        if await store.count() > 0:
            return 0
        inserted = await store.insert_many(SAMPLE_LESSONS)
    except PyMongoError:
        logger.exception("Error initializing lessons collection")
        return 0
    logger.info("Inserted %d sample lessons", inserted)
    return inserted
