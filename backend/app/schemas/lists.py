"""Schemas for the raw list endpoints."""

from typing import Any

from pydantic import BaseModel


class GraphListItem(BaseModel):
    """List row read through Microsoft Graph."""

    id: Any
    title: str = ""
    modified: str = ""

    @classmethod
    def from_graph(cls, raw: dict[str, Any]) -> "GraphListItem":
        fields = raw.get("fields") or {}
        item_id = fields.get("Id")
        return cls(
            id=item_id if item_id is not None else raw.get("id"),
            title=fields.get("Title") or "",
            modified=fields.get("Modified") or "",
        )


class PublicListItem(BaseModel):
    """List row read through SharePoint REST with the certificate credential."""

    id: Any
    title: str = ""
    text: str = ""
    modified: str = ""
    num: Any = ""

    @classmethod
    def from_rest(cls, raw: dict[str, Any]) -> "PublicListItem":
        return cls(
            id=raw.get("Id"),
            title=raw.get("Title") or "",
            text=raw.get("Text") or "",
            modified=raw.get("Modified") or "",
            num=raw.get("No") or "",
        )
