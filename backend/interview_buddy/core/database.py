from pymongo import MongoClient, DESCENDING
from datetime import datetime, timezone
from typing import List, Optional
from bson.objectid import ObjectId
from bson.errors import InvalidId
from interview_buddy.core.config import settings

import logging
import time
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

logger = logging.getLogger(__name__)

class DatabaseUnavailableError(Exception):
    """Raised when no MongoDB connection is available"""

def create_database_connection():
    """Create MongoDB connection with error handling and retries"""
    max_retries = 3
    retry_delay = 2

    for attempt in range(max_retries):
        try:
            client = MongoClient(
                settings.MONGO_URI,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
                socketTimeoutMS=20000,
                maxPoolSize=10,
                retryWrites=True
            )

            client.admin.command('ping')
            logger.info("✅ [DB] MongoDB connection established successfully")
            return client

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"❌ [DB] MongoDB connection attempt {attempt + 1} failed: {e}")
            if attempt < max_retries - 1:
                logger.info(f"Retrying in {retry_delay} seconds...")
                time.sleep(retry_delay)
                retry_delay *= 2
            else:
                logger.critical("💥 [DB] All MongoDB connection attempts failed - running without database")
                return None

# Connection is opened by init_database() from the app lifespan
client = None
db = None

def init_database():
    """Open the shared connection and select the application database"""
    global client, db

    client = create_database_connection()
    db = client[settings.MONGO_DB_NAME] if client is not None else None
    return db is not None

def check_database_health():
    """Check if database connection is healthy"""
    global client, db

    try:
        if client is None:
            return False
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.error(f"[DB] Database health check failed: {e}")
        logger.info("Attempting database reconnection...")
        return init_database()

def get_collection(name: str):
    if db is None:
        raise DatabaseUnavailableError("Database unavailable")
    return db[name]

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def _to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None

def _serialize(doc: Optional[dict]) -> Optional[dict]:
    """Swap Mongo's ObjectId primary key for a string id"""
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc

class InterviewDB:
    """Interview record operations"""

    @staticmethod
    def create_interview(interview: dict) -> str:
        if interview.get("finalized") and not interview.get("questions"):
            raise ValueError("A finalized interview needs at least one question")

        doc = dict(interview)
        doc.setdefault("createdAt", now_iso())
        result = get_collection("interviews").insert_one(doc)
        logger.info(f"✅ [DB] Stored interview {result.inserted_id} ({len(doc.get('questions', []))} questions)")
        return str(result.inserted_id)

    @staticmethod
    def get_interview_by_id(interview_id: str) -> Optional[dict]:
        object_id = _to_object_id(interview_id)
        if object_id is None:
            return None
        return _serialize(get_collection("interviews").find_one({"_id": object_id}))

    @staticmethod
    def get_interviews_by_user(user_id: str, limit: int = 10) -> List[dict]:
        cursor = (
            get_collection("interviews")
            .find({"userId": user_id, "finalized": True})
            .sort("createdAt", DESCENDING)
            .limit(limit)
        )
        return [_serialize(doc) for doc in cursor]

    @staticmethod
    def get_latest_interviews(user_id: str, limit: int = 20) -> List[dict]:
        """Finalized interviews owned by anyone except user_id"""
        cursor = (
            get_collection("interviews")
            .find({"finalized": True, "userId": {"$ne": user_id}})
            .sort("createdAt", DESCENDING)
            .limit(limit)
        )
        return [_serialize(doc) for doc in cursor]

    @staticmethod
    def get_random_interviews(limit: int) -> List[dict]:
        """Finalized interviews without an owner, newest first"""
        cursor = (
            get_collection("interviews")
            .find({"finalized": True, "userId": None})
            .sort("createdAt", DESCENDING)
            .limit(limit)
        )
        return [_serialize(doc) for doc in cursor]

class AttemptDB:
    """Practice attempt operations"""

    @staticmethod
    def create_attempt(attempt: dict) -> str:
        doc = dict(attempt)
        doc.setdefault("completedAt", now_iso())
        result = get_collection("interview_attempts").insert_one(doc)
        logger.info(f"✅ [DB] Stored attempt {result.inserted_id} for interview {doc.get('interviewId')}")
        return str(result.inserted_id)

    @staticmethod
    def get_attempts(user_id: str, interview_id: Optional[str] = None, limit: int = 20) -> List[dict]:
        query = {"userId": user_id}
        if interview_id:
            query["interviewId"] = interview_id

        cursor = (
            get_collection("interview_attempts")
            .find(query)
            .sort("completedAt", DESCENDING)
            .limit(limit)
        )
        return [_serialize(doc) for doc in cursor]

class FeedbackDB:
    """Feedback report operations"""

    @staticmethod
    def save_feedback(feedback: dict, feedback_id: Optional[str] = None) -> str:
        collection = get_collection("feedback")
        object_id = _to_object_id(feedback_id) if feedback_id else None

        if object_id is not None:
            collection.replace_one({"_id": object_id}, feedback, upsert=True)
            return str(object_id)

        result = collection.insert_one(dict(feedback))
        return str(result.inserted_id)

    @staticmethod
    def get_feedback(interview_id: str, user_id: str) -> Optional[dict]:
        return _serialize(
            get_collection("feedback").find_one({"interviewId": interview_id, "userId": user_id})
        )

class UserDB:
    """User database operations"""

    @staticmethod
    def get_user_by_email(email: str):
        return get_collection("users").find_one({"email": email})

    @staticmethod
    def create_user(name: str, email: str, hashed_password: str):
        user = {
            "name": name,
            "email": email,
            "hashed_password": hashed_password,
            "created_at": datetime.now(timezone.utc)
        }
        result = get_collection("users").insert_one(user)
        user["_id"] = result.inserted_id
        return user

    @staticmethod
    def get_user_by_id(user_id: str):
        object_id = _to_object_id(user_id)
        if object_id is None:
            return None
        return get_collection("users").find_one({"_id": object_id})
