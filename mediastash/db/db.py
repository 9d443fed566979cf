"""Abstract library database."""

from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel, Field

from mediastash.attachment.errors import ResourceNotFoundError
from mediastash.attachment.models import MediaSourceRef
from mediastash.models import MediaItem, User


class DBConfig(BaseModel):
    """Base configuration shared by all database backends."""

    type: str = Field(alias="TYPE")


class DB(ABC):
    """Library of media items and users.

    Backends implement item and user retrieval; media source resolution is
    shared.
    """

    db_name: str = "DB"
    module_name: str = "db"

    @abstractmethod
    def get_item(self, item_id: str) -> MediaItem | None:
        """Return the media item with the given id, or None if it does not exist."""

    @abstractmethod
    def get_users(self) -> list[User]:
        """Return every user of the server."""

    @abstractmethod
    def health_check(self) -> None:
        """Raise an exception if the database is not usable."""

    def get_media_source(self, item_id: str, media_source_id: str) -> MediaSourceRef:
        """Resolve the file backing a media source of an item.

        Raises:
            ResourceNotFoundError: If the item or the media source does not exist.
        """
        item = self.get_item(item_id)
        if item is None:
            raise ResourceNotFoundError(f"Media item '{item_id}' not found")

        source = item.get_media_source(media_source_id)
        if source is None:
            raise ResourceNotFoundError(
                f"Media source '{media_source_id}' not found for item '{item_id}'"
            )

        return MediaSourceRef(
            item_id=item.id,
            media_source_id=source.id,
            path=Path(source.path),
        )

    def get_administrators(self) -> list[User]:
        """Return users holding the administrator permission."""
        return [user for user in self.get_users() if user.is_administrator]
