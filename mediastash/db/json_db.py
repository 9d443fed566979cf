"""In-memory JSON database implementation."""

from typing import Any

from pydantic import Field

from mediastash.db.db import DB, DBConfig
from mediastash.models import MediaItem, User


def db_config_type():
    """Return the configuration class for JSON database."""
    return JsonDbConfig


class JsonDbConfig(DBConfig):
    """Configuration for in-memory JSON database."""

    data: dict[str, Any] = Field(alias="DATA")


def db_from_config(config: JsonDbConfig):
    """Create a JSON database instance from configuration."""
    return Json(config.data)


class Json(DB):
    """In-memory JSON database implementation.

    Expected layout::

        {
            "items": [{"id": ..., "name": ..., "media_sources": [{"id": ..., "path": ...}]}],
            "users": [{"id": ..., "name": ..., "is_administrator": true}]
        }
    """

    def __init__(self, data: dict[str, Any]):
        """Initialize JSON database with data dictionary."""
        super().__init__()
        self.data: dict[str, Any] = data
        self.module_name = "json_db"
        self.db_name = "JsonDb"

    def get_item(self, item_id: str) -> MediaItem | None:
        """Retrieve a media item by its id."""
        wanted = next((item for item in self._get_items() if item.get("id") == item_id), None)
        if wanted is None:
            return None
        return MediaItem.model_validate(wanted)

    def get_users(self) -> list[User]:
        """Retrieve all users."""
        return [User.model_validate(user) for user in self.data.get("users", [])]

    def _get_items(self) -> list[dict[str, Any]]:
        items = self.data.get("items")
        if items is None:
            raise Exception("Items should not be None")
        return items

    def health_check(self) -> None:
        """Perform a health check on the JSON database.

        Raises an exception if the database is not accessible.
        """
        self._get_items()
