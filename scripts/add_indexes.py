"""Migration script: create the MongoDB indexes used by the messaging core.

This script creates:
1. Unique keys on users.phone_number, groups.group_id and messages.message_id
2. Query-path indexes for conversation paging, group paging and unread lookups

Usage:
    python scripts/add_indexes.py

Uses MONGO_URI and CHAT_DB_NAME from the environment or config files.
"""
import logging
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chatify_server.messaging.repository import MessageRepository
from chatify_server.repository.group_repository import GroupRepository
from chatify_server.repository.mongo_helper import MongoClientFactory, ensure_indexes
from chatify_server.repository.user_repository import UserRepository
from config import config

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def main(db=None):
    if db is None:
        db = MongoClientFactory.get_db(config.MONGO_URI, config.CHAT_DB_NAME)
    repositories = [UserRepository(db), GroupRepository(db), MessageRepository(db)]

    logger.info('=' * 60)
    logger.info('Creating indexes in %s', db.name)
    logger.info('=' * 60)
    ensure_indexes(*repositories)

    for repo in repositories:
        names = sorted(repo.collection.index_information())
        logger.info('%s: %s', repo.collection_name, ', '.join(names))
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    finally:
        MongoClientFactory.close_all()
