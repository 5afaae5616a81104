from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BaseRepository(ABC):
    """Thin CRUD wrapper around one pymongo collection.

    Subclasses name their collection and declare the indexes their query
    paths rely on.
    """
    collection_name: str = None

    def __init__(self, db, collection_name: Optional[str] = None):
        self.db = db
        self.collection_name = collection_name or self.collection_name
        self.collection = db[self.collection_name]

    @abstractmethod
    def ensure_indexes(self):
        """Create the indexes this repository's queries need (idempotent)."""
        pass

    def create(self, document: Dict[str, Any]) -> str:
        """Insert a document into the collection."""
        result = self.collection.insert_one(document)
        return str(result.inserted_id)

    def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Find a single document matching the query."""
        return self.collection.find_one(query)

    def update(self, query: Dict[str, Any], update_fields: Dict[str, Any]) -> int:
        """Update documents matching the query with update_fields."""
        result = self.collection.update_many(query, {'$set': update_fields})
        return result.modified_count

