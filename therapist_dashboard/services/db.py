# async mongodb client for the backend api
# uses motor for non-blocking operations, implements the generic query interface

import logging
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from therapist_dashboard.config import settings
from therapist_dashboard.services.query import Document, DocumentStore, Query, QueryError

logger = logging.getLogger(__name__)

# sub-collection documents carry the path of their parent document
PARENT_FIELD = "parent_path"

_MONGO_OPS = {
    "==": "$eq",
    "!=": "$ne",
    "<": "$lt",
    "<=": "$lte",
    ">": "$gt",
    ">=": "$gte",
    "in": "$in",
}


def translate_query(query: Query) -> tuple[str, dict, list[tuple[str, int]]]:
    """map a query onto (collection name, mongo filter, sort spec)"""
    segments = query.segments
    if not segments or len(segments) % 2 == 0:
        raise QueryError(query.path, "not a collection path")

    mongo_filter: dict[str, Any] = {}
    if len(segments) > 1:
        mongo_filter[PARENT_FIELD] = "/".join(segments[:-1])

    for f in query.filters:
        if f.op == "array-contains":
            condition = {"$all": [f.value]}
        elif f.op == "in":
            condition = {"$in": list(f.value)}
        else:
            condition = {_MONGO_OPS[f.op]: f.value}
        mongo_filter.setdefault(f.field, {}).update(condition)

    sort = [
        (o.field, DESCENDING if o.direction == "desc" else ASCENDING)
        for o in query.ordering
    ]
    return segments[-1], mongo_filter, sort


def _to_document(doc: dict) -> Document:
    data = {k: v for k, v in doc.items() if k not in ("_id", PARENT_FIELD)}
    return Document(id=str(doc.get("_id", "")), data=data)


class Database(DocumentStore):
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        """establish connection to mongodb"""
        if self.client is not None:
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        # tz_aware so message timestamps come back as comparable utc datetimes
        self.client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True)
        self.db = self.client[settings.MONGODB_DATABASE]

        # verify connection
        await self.client.admin.command("ping")
        logger.info("MongoDB connection established")

    async def close(self):
        """close mongodb connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    def collection(self, name: str):
        if self.db is None:
            raise QueryError(name, "database is not connected")
        return self.db[name]

    async def _run(self, query: Query) -> list[Document]:
        name, mongo_filter, sort = translate_query(query)
        cursor = self.collection(name).find(mongo_filter)
        if sort:
            cursor = cursor.sort(sort)
        if query.max_results is not None:
            # mongo treats limit(0) as "no limit"
            if query.max_results == 0:
                return []
            cursor = cursor.limit(query.max_results)

        documents = []
        async for doc in cursor:
            documents.append(_to_document(doc))
        return documents

    # collection accessors

    @property
    def users(self):
        return self.collection("users")


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
