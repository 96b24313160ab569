"""MongoDB implementation of OtpRepository (`otps` collection).

A unique (email, purpose) index keeps at most one record per pair, and every
issue is a new document with a new _id. A TTL index on created_at
garbage-collects records nobody comes back for.
"""

from __future__ import annotations

from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from repositories.base import to_object_id, translate_pymongo_errors
from schemas.models.otp import OtpDoc, OtpPurpose, OtpStage

OTPS_COLLECTION = "otps"


class MongoOtpRepository:
    def __init__(self, db: AsyncDatabase, ttl_seconds: int = 300) -> None:
        self._col: AsyncCollection = db[OTPS_COLLECTION]
        self._ttl_seconds = ttl_seconds

    @translate_pymongo_errors
    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("email", ASCENDING), ("purpose", ASCENDING)], unique=True
        )
        await self._col.create_index(
            [("created_at", ASCENDING)], expireAfterSeconds=self._ttl_seconds
        )

    @translate_pymongo_errors
    async def replace(self, otp: OtpDoc) -> OtpDoc:
        filter_ = {"email": otp.email, "purpose": otp.purpose.value}
        body = otp.to_mongo()
        # Fresh _id per issue: a superseded record's id never matches the new one
        body["_id"] = ObjectId()
        await self._col.delete_many(filter_)
        try:
            await self._col.insert_one(body)
        except DuplicateKeyError:
            # A concurrent issue landed in between; last write wins.
            await self._col.delete_many(filter_)
            await self._col.insert_one(body)
        return OtpDoc.from_mongo(body)

    @translate_pymongo_errors
    async def find(self, email: str, purpose: OtpPurpose) -> Optional[OtpDoc]:
        doc = await self._col.find_one({"email": email, "purpose": purpose.value})
        return OtpDoc.from_mongo(doc)

    @translate_pymongo_errors
    async def increment_attempts(
        self,
        otp_id: str,
        *,
        below: int,
        stage: Optional[OtpStage] = None,
    ) -> Optional[OtpDoc]:
        update: dict = {"$inc": {"attempts": 1}}
        if stage is not None:
            update["$set"] = {"stage": stage.value}
        doc = await self._col.find_one_and_update(
            {"_id": to_object_id(otp_id), "attempts": {"$lt": below}},
            update,
            return_document=ReturnDocument.AFTER,
        )
        return OtpDoc.from_mongo(doc)

    @translate_pymongo_errors
    async def delete(self, otp_id: str) -> bool:
        result = await self._col.delete_one({"_id": to_object_id(otp_id)})
        return result.deleted_count == 1

