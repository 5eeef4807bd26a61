"""Typed containers for SharePoint list data.

List items themselves stay plain dictionaries because the column set is
configured in SharePoint, not here. Only the shapes derived from them are
typed.
"""

from dataclasses import dataclass
from typing import Any

# A SharePoint list item as returned with odata=nometadata
ListItem = dict[str, Any]


@dataclass(frozen=True)
class ImageFieldValue:
    """Decoded image-reference column (Thumbnail, Cover Image)."""

    file_name: str | None = None
    server_relative_url: str | None = None
    url: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.file_name or self.server_relative_url or self.url)


@dataclass(frozen=True)
class Attachment:
    """A file attached to a list item."""

    file_name: str
    server_relative_url: str

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Attachment":
        return cls(
            file_name=str(raw.get("FileName") or ""),
            server_relative_url=str(raw.get("ServerRelativeUrl") or ""),
        )

    def to_api(self) -> dict[str, str]:
        return {"FileName": self.file_name, "ServerRelativeUrl": self.server_relative_url}
