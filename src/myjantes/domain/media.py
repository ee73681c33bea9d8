from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from myjantes.domain.value_objects import DocumentKind, MediaType


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class MediaFile:
    """A file already uploaded to object storage, as reported by the uploader.

    ``type`` is the MIME type (``image/jpeg``, ``video/mp4``...).
    """

    key: str
    type: str
    name: str | None = None

    @property
    def media_type(self) -> MediaType:
        if self.type.lower().startswith("image/"):
            return MediaType.IMAGE
        return MediaType.VIDEO

    @property
    def is_image(self) -> bool:
        return self.media_type == MediaType.IMAGE

    @property
    def file_name(self) -> str:
        if self.name:
            return self.name
        return self.key.rstrip("/").split("/")[-1] or "unknown"


@dataclass
class MediaReference:
    document_kind: DocumentKind
    document_id: UUID
    file_path: str
    file_type: MediaType
    file_name: str
    file_size: int | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def from_file(
        cls, document_kind: DocumentKind, document_id: UUID, media: MediaFile
    ) -> "MediaReference":
        return cls(
            document_kind=document_kind,
            document_id=document_id,
            file_path=media.key,
            file_type=media.media_type,
            file_name=media.file_name,
        )


def count_images(files: list[MediaFile]) -> int:
    return sum(1 for f in files if f.is_image)


__all__ = ["MediaFile", "MediaReference", "count_images"]
