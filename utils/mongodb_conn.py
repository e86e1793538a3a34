import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from services.exceptions import StoreError

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate driver failures raised inside the block into StoreError."""
    try:
        yield
    except PyMongoError as e:
        logger.error(f"[MongoDB] {operation} failed: {type(e).__name__}: {e}")
        raise StoreError(operation, str(e)) from e


def build_mongodb_uri() -> str:
    mongodb_uri = os.getenv("MONGODB_URI")
    if mongodb_uri:
        return mongodb_uri
    # Build URI from the individual variables
    host = os.getenv("MONGODB_HOST", "localhost")
    port = int(os.getenv("MONGODB_PORT", 27017))
    database = os.getenv("MONGODB_DATABASE", "stackbot")
    username = os.getenv("MONGODB_USERNAME", "")
    password = os.getenv("MONGODB_PASSWORD", "")
    auth_source = os.getenv("MONGODB_AUTH_SOURCE", "admin")

    if username and password:
        return f"mongodb://{username}:{password}@{host}:{port}/{database}?authSource={auth_source}"
    return f"mongodb://{host}:{port}/{database}"


class MongodbConnection:
    """
    Process-wide handle on the document store.

    Built once at startup and handed to the services; nothing else opens
    its own client.
    """

    def __init__(self, mongodb_uri: Optional[str] = None, database_name: Optional[str] = None, client=None):
        self.mongodb_uri = mongodb_uri or build_mongodb_uri()
        self.database_name = database_name or os.getenv("MONGODB_DATABASE", "stackbot")
        self.mongo_client = client or AsyncIOMotorClient(self.mongodb_uri, tz_aware=True)
        self.is_connected = False

    def get_database(self, database_name: Optional[str] = None) -> AsyncIOMotorDatabase:
        return self.mongo_client[database_name or self.database_name]

    async def connect(self) -> None:
        """Ping the server; StoreError when it cannot be reached."""
        with store_errors("MongoDB connect"):
            await self.mongo_client.admin.command("ping")
        self.is_connected = True
        logger.info(f"[MongoDB] Connected to database '{self.database_name}'")

    async def check_connection(self) -> bool:
        try:
            await self.mongo_client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"[MongoDB] Ping failed: {e}")
            return False

    def close_mongo_client(self) -> None:
        self.mongo_client.close()
        self.is_connected = False
