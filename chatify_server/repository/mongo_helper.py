import logging

from pymongo import MongoClient

logger = logging.getLogger(__name__)


class MongoClientFactory:
    """Caches one MongoClient per URI; pymongo clients are thread-safe and pooled."""
    _clients = {}

    @classmethod
    def get_db(cls, mongo_uri: str, db_name: str):
        client = cls._clients.get(mongo_uri)
        if client is None:
            logger.info("Connecting to MongoDB, db=%s", db_name)
            client = MongoClient(mongo_uri)
            cls._clients[mongo_uri] = client
        return client[db_name]

    @classmethod
    def close_all(cls):
        for client in cls._clients.values():
            client.close()
        cls._clients = {}


def ensure_indexes(*repositories):
    """Create recommended indexes for every repository (idempotent)."""
    for repo in repositories:
        try:
            repo.ensure_indexes()
            logger.debug("Ensured indexes for '%s'", repo.collection_name)
        except Exception:
            logger.exception("Error creating indexes for '%s'", repo.collection_name)
            raise
