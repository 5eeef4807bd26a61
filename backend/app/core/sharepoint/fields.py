"""Parsers for SharePoint image-reference columns.

Image columns (Thumbnail, Cover Image) have been stored in several shapes
over the life of the list:

- a JSON string such as {"fileName": "Reserved_ImageAttachment_...png", ...}
- a plain string holding a URL or a bare file name
- an object with serverUrl + serverRelativeUrl

The column itself may also appear under different internal names, since
SharePoint encodes spaces and special characters ("Cover Image" becomes
"Cover_x0020_Image").
"""

import json
import re
from collections.abc import Iterable, Mapping
from typing import Any

from app.core.sharepoint.models import Attachment, ImageFieldValue

FIELD_CANDIDATES: dict[str, list[str]] = {
    "thumbnail": ["Thumbnail", "thumbnail"],
    "cover": [
        "CoverImage",
        "Cover_Image",
        "Cover_x0020_Image",
        "Cover Image",
        "coverImage",
        "cover",
    ],
}

# Internal column names read by the image endpoints
IMAGE_FIELD_NAMES = {
    "thumbnail": "Thumbnail",
    "cover": "Cover_x0020_Image",
}

CONTENT_TYPES = {
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}

_EXTENSION = re.compile(r"\.([a-zA-Z0-9]+)$")


def _first_truthy(value: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        candidate = value.get(key)
        if candidate:
            return candidate
    return None


_NOT_JSON = object()


def _decode_structured(value: str) -> Any:
    """Decode value as JSON, or return _NOT_JSON when it is not a JSON document."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return _NOT_JSON


def _from_mapping(value: Mapping[str, Any]) -> ImageFieldValue:
    file_name = _first_truthy(value, ("fileName", "FileName", "name", "Name"))
    server_relative_url = _first_truthy(value, ("serverRelativeUrl", "ServerRelativeUrl"))

    server_url = value.get("serverUrl")
    relative = value.get("serverRelativeUrl")
    if server_url and relative:
        url = str(server_url).rstrip("/") + str(relative)
    else:
        url = _first_truthy(value, ("url", "Url"))

    return ImageFieldValue(
        file_name=file_name,
        server_relative_url=server_relative_url,
        url=url,
    )


def parse_image_field(value: Any) -> ImageFieldValue:
    """Decode an image column into file name, server relative URL and URL.

    Never raises; empty or unrecognised input yields an all-None value.
    """
    if not value:
        return ImageFieldValue()

    if isinstance(value, str):
        decoded = _decode_structured(value)
        if decoded is _NOT_JSON:
            # Plain URL or file name
            text = value.strip()
            return ImageFieldValue(
                file_name=text.split("/")[-1] or None,
                server_relative_url=None,
                url=text or None,
            )
        value = decoded

    if isinstance(value, Mapping):
        return _from_mapping(value)

    return ImageFieldValue()


def image_field_file_name(value: Any) -> str | None:
    """Strict file-name lookup used when resolving attachments.

    Only structured values count; a plain string is not trusted to name an
    attachment.
    """
    if not value:
        return None

    if isinstance(value, str):
        value = _decode_structured(value)

    if isinstance(value, Mapping):
        return _first_truthy(value, ("fileName", "FileName"))

    return None


def pick_field(item: Mapping[str, Any] | None, candidates: Iterable[str]) -> Any:
    """Return the value of the first candidate column present in the item.

    Presence decides, not truthiness: an empty value under an earlier
    candidate wins over data under a later one. Existing list schemas rely
    on this order.
    """
    if not item:
        return None
    for key in candidates:
        if key in item:
            return item[key]
    return None


def find_attachment(
    attachments: Iterable[Attachment] | None,
    file_name: str | None,
) -> Attachment | None:
    """Return the attachment whose file name matches exactly, if any."""
    if not file_name:
        return None
    for attachment in attachments or []:
        if attachment.file_name == file_name:
            return attachment
    return None


def file_extension(file_name: str | None, default: str | None = "jpg") -> str | None:
    """Lower-cased extension of file_name, or default when there is none."""
    match = _EXTENSION.search(str(file_name or ""))
    return match.group(1).lower() if match else default


def guess_content_type(file_name: str | None) -> str:
    """Image MIME type from the file extension."""
    ext = file_extension(file_name, default=None)
    return CONTENT_TYPES.get(ext or "", "application/octet-stream")
