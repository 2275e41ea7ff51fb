from .collection_repository import CollectionRepository
from .config_repository import ConfigRepository
from .item_repository import ItemRepository

__all__ = ["CollectionRepository", "ConfigRepository", "ItemRepository"]
