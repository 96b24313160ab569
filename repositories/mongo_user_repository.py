"""MongoDB implementation of UserRepository (`users` collection)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from repositories.base import to_object_id, translate_pymongo_errors
from schemas.models.user import UserDoc
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"


class MongoUserRepository:
    def __init__(self, db: AsyncDatabase, clock: Clock = utcnow) -> None:
        self._col: AsyncCollection = db[USERS_COLLECTION]
        self._clock = clock

    @translate_pymongo_errors
    async def ensure_indexes(self) -> None:
        await self._col.create_index([("email", ASCENDING)], unique=True)
        await self._col.create_index([("username", ASCENDING)], unique=True)

    @translate_pymongo_errors
    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        if not ObjectId.is_valid(str(user_id)):
            return None
        doc = await self._col.find_one({"_id": ObjectId(str(user_id))})
        return UserDoc.from_mongo(doc)

    @translate_pymongo_errors
    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"email": email.strip().lower()})
        return UserDoc.from_mongo(doc)

    @translate_pymongo_errors
    async def find_by_username(self, username: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"username": username.strip().lower()})
        return UserDoc.from_mongo(doc)

    @translate_pymongo_errors
    async def insert(self, user: UserDoc) -> UserDoc:
        now = self._clock()
        user = user.model_copy(update={"created_at": now, "updated_at": now})
        try:
            result = await self._col.insert_one(user.to_mongo())
        except DuplicateKeyError as e:
            # Race: the email/username was taken between the check and the insert
            field = "email" if "email" in str(e) else "username"
            log.warning("user_insert_conflict", field=field)
            raise ConflictError(f"This {field} is already registered", field=field) from e
        return user.model_copy(update={"id": result.inserted_id})

    @translate_pymongo_errors
    async def increment_login_attempts(self, user_id: str) -> int:
        doc = await self._col.find_one_and_update(
            {"_id": to_object_id(user_id)},
            {"$inc": {"login_attempts": 1}, "$set": {"updated_at": self._clock()}},
            projection={"login_attempts": 1},
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["login_attempts"]) if doc else 0

    @translate_pymongo_errors
    async def lock_until(self, user_id: str, until: datetime) -> None:
        await self._col.update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {"block_expires": until, "updated_at": self._clock()}},
        )

    @translate_pymongo_errors
    async def reset_login_attempts(
        self, user_id: str, *, login_at: Optional[datetime] = None
    ) -> None:
        fields: dict = {
            "login_attempts": 0,
            "block_expires": None,
            "updated_at": self._clock(),
        }
        if login_at is not None:
            fields["last_login_at"] = login_at
        await self._col.update_one({"_id": to_object_id(user_id)}, {"$set": fields})

    @translate_pymongo_errors
    async def mark_email_verified(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one_and_update(
            {"email": email.strip().lower()},
            {"$set": {"is_email_verified": True, "updated_at": self._clock()}},
            return_document=ReturnDocument.AFTER,
        )
        return UserDoc.from_mongo(doc)

    @translate_pymongo_errors
    async def set_password_hash(
        self, user_id: str, password_hash: str, *, clear_lockout: bool = False
    ) -> None:
        fields: dict = {"password_hash": password_hash, "updated_at": self._clock()}
        if clear_lockout:
            fields["login_attempts"] = 0
            fields["block_expires"] = None
        await self._col.update_one({"_id": to_object_id(user_id)}, {"$set": fields})
