from pydantic import BaseModel, Field


class MediaSource(BaseModel):
    """Represents one physical or virtual file backing a media item.

    Attributes:
        id: Media source identifier, unique within the item
        path: Absolute path of the container file
        name: Optional display name (e.g. "1080p", "Director's cut")
    """

    id: str
    path: str
    name: str = ""


class MediaItem(BaseModel):
    """Represents a video in the library.

    Attributes:
        id: Item identifier
        name: Display name
        media_sources: Files the item can be played from
    """

    id: str
    name: str = ""
    media_sources: list[MediaSource] = Field(default_factory=list)

    def get_media_source(self, media_source_id: str) -> MediaSource | None:
        return next((s for s in self.media_sources if s.id == media_source_id), None)


class User(BaseModel):
    """Represents a user of the server.

    Attributes:
        id: User identifier
        name: Display name
        is_administrator: Whether the user holds the administrator permission
    """

    id: str
    name: str = ""
    is_administrator: bool = False


class NameIdPair(BaseModel):
    """Name and identifier of a registered component, serialized PascalCase."""

    name: str = Field(serialization_alias="Name")
    id: str = Field(serialization_alias="Id")
