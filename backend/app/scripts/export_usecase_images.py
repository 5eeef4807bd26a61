"""Export use case images and normalised catalog JSON for static hosting.

Reads the raw catalog export, downloads each item's thumbnail and cover
through the deployed get-usecase-image endpoint, stores them as
<images-root>/<id>/thumbnail.<ext> and cover.<ext>, and writes the catalog
back with Thumbnail, CoverImage and Images pointing at the saved files.

Usage:
    python -m app.scripts.export_usecase_images
    python -m app.scripts.export_usecase_images --raw data/raw.json --out data/use_cases.json

Requires AZURE_FUNC_URL_IMAGE and AZURE_FUNC_KEY in the environment (or .env).
"""

import argparse
import asyncio
import json
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from app.config import get_settings
from app.core.exceptions import DataProcessingError
from app.core.logging import configure_logging, get_logger
from app.core.sharepoint import file_extension

logger = get_logger(__name__)

DEFAULT_RAW_PATH = "public/data/use_cases.raw.json"
DEFAULT_OUT_PATH = "public/data/use_cases.json"
DEFAULT_IMAGES_ROOT = "public/images/use-cases"
PUBLIC_PREFIX = "/images/use-cases"

SUPPORTED_EXTENSIONS = ("png", "jpg", "jpeg", "webp", "gif")

_CONTENT_DISPOSITION_FILENAME = re.compile(
    r"filename\*?=(?:UTF-8''|\")?([^;\"\r\n]+)", re.IGNORECASE
)
_STALE_IMAGE = re.compile(r"^(cover|thumbnail)\.(png|jpe?g|webp|gif|tmp)$", re.IGNORECASE)


@dataclass
class KindStats:
    downloaded: int = 0
    missing: int = 0
    failed: int = 0

    def summary(self) -> str:
        return (
            f"downloaded={self.downloaded}, missing(404)={self.missing}, "
            f"failed={self.failed}"
        )


@dataclass
class ExportStats:
    """Outcome counters for one export run."""

    thumbnail: KindStats
    cover: KindStats
    skipped_missing_id: int = 0

    @classmethod
    def empty(cls) -> "ExportStats":
        return cls(thumbnail=KindStats(), cover=KindStats())

    def summary(self) -> str:
        return " | ".join(
            [
                f"Thumbnail: {self.thumbnail.summary()}",
                f"Cover: {self.cover.summary()}",
                f"Skipped: missing ID={self.skipped_missing_id}",
            ]
        )


def filename_from_content_disposition(value: str | None) -> str | None:
    """File name from a Content-Disposition header (quoted, bare or RFC 5987)."""
    match = _CONTENT_DISPOSITION_FILENAME.search(value or "")
    if not match:
        return None
    return match.group(1).replace('"', "").strip() or None


def extension_from_content_type(value: str | None) -> str | None:
    content_type = (value or "").lower()
    for mime, ext in (
        ("image/png", "png"),
        ("image/jpeg", "jpg"),
        ("image/webp", "webp"),
        ("image/gif", "gif"),
    ):
        if mime in content_type:
            return ext
    return None


def pick_extension(headers: httpx.Headers) -> str:
    """Served file name first, then Content-Type; jpeg becomes jpg, jpg is the fallback."""
    served_name = filename_from_content_disposition(headers.get("content-disposition"))
    ext = file_extension(served_name, default=None) or extension_from_content_type(
        headers.get("content-type")
    )
    if ext == "jpeg":
        ext = "jpg"
    if not ext or ext not in SUPPORTED_EXTENSIONS:
        ext = "jpg"
    return ext


def clean_old_images(folder: Path) -> None:
    """Remove cover.* and thumbnail.* left by earlier runs."""
    if not folder.exists():
        return
    for path in folder.iterdir():
        if _STALE_IMAGE.match(path.name):
            path.unlink(missing_ok=True)


def item_identifier(item: dict[str, Any]) -> Any:
    for key in ("ID", "Id", "id"):
        if item.get(key) is not None:
            return item[key]
    return None


async def download_image(
    client: httpx.AsyncClient,
    base_url: str,
    key: str,
    item_id: Any,
    kind: str,
    folder: Path,
) -> str:
    """
    Download one image kind and save it under folder.

    Returns:
        Public path of the saved file, e.g. /images/use-cases/12/cover.png

    Raises:
        httpx.HTTPStatusError: If the endpoint answered with an error status
        DataProcessingError: If the body is empty
    """
    response = await client.get(
        base_url,
        params={"itemId": str(item_id), "kind": kind, "code": key},
    )
    response.raise_for_status()

    if not response.content:
        raise DataProcessingError(f"{kind} download is empty")

    ext = pick_extension(response.headers)
    (folder / f"{kind}.{ext}").write_bytes(response.content)
    return f"{PUBLIC_PREFIX}/{item_id}/{kind}.{ext}"


async def export_images(
    items: list[dict[str, Any]],
    client: httpx.AsyncClient,
    base_url: str,
    key: str,
    images_root: Path,
) -> ExportStats:
    """Download images for every item and rewrite its image columns in place."""
    stats = ExportStats.empty()
    images_root.mkdir(parents=True, exist_ok=True)

    for item in items:
        item_id = item_identifier(item)
        if not item_id:
            stats.skipped_missing_id += 1
            continue

        # Reset every run so stale paths never survive
        item["Thumbnail"] = None
        item["CoverImage"] = None
        item["Images"] = []

        folder = images_root / str(item_id)
        folder.mkdir(parents=True, exist_ok=True)
        clean_old_images(folder)

        for kind, counters in (("thumbnail", stats.thumbnail), ("cover", stats.cover)):
            try:
                public_path = await download_image(client, base_url, key, item_id, kind, folder)
            except httpx.HTTPStatusError as e:
                counters.missing += 1
                logger.info(
                    "usecase_image_missing",
                    item_id=item_id,
                    kind=kind,
                    status_code=e.response.status_code,
                )
                continue
            except (httpx.RequestError, DataProcessingError, OSError) as e:
                counters.failed += 1
                logger.warning(
                    "usecase_image_download_failed",
                    item_id=item_id,
                    kind=kind,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue

            counters.downloaded += 1
            if kind == "thumbnail":
                item["Thumbnail"] = public_path
            else:
                item["CoverImage"] = public_path
                item["Images"] = [public_path]

    return stats


async def run_export(
    raw_path: Path,
    out_path: Path,
    images_root: Path,
    timeout: float = 60.0,
) -> int:
    """Run the export.

    Returns:
        Exit code (0 for success, 1 when input or configuration is missing)
    """
    settings = get_settings()

    if not raw_path.exists():
        print(f"Missing raw JSON: {raw_path}", file=sys.stderr)
        return 1

    if not settings.azure_func_url_image or not settings.azure_func_key:
        print("Missing AZURE_FUNC_URL_IMAGE or AZURE_FUNC_KEY env vars", file=sys.stderr)
        return 1

    items = json.loads(raw_path.read_text(encoding="utf-8"))
    if not isinstance(items, list):
        print(f"Expected a JSON array in {raw_path}", file=sys.stderr)
        return 1

    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        stats = await export_images(
            items,
            client,
            settings.azure_func_url_image,
            settings.azure_func_key,
            images_root,
        )

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(items, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info("usecase_export_complete", item_count=len(items), out_path=str(out_path))
    print(f"Wrote {out_path} ({len(items)} items)")
    print(stats.summary())
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Download use case images and write the normalised catalog JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default paths under public/
  python -m app.scripts.export_usecase_images

  # Custom locations
  python -m app.scripts.export_usecase_images --raw raw.json --out use_cases.json
        """,
    )
    parser.add_argument("--raw", default=DEFAULT_RAW_PATH, help="Raw SharePoint export")
    parser.add_argument("--out", default=DEFAULT_OUT_PATH, help="Normalised JSON output")
    parser.add_argument(
        "--images-root",
        default=DEFAULT_IMAGES_ROOT,
        help=f"Folder for downloaded images (default: {DEFAULT_IMAGES_ROOT})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Per-download timeout in seconds (default: 60)",
    )

    args = parser.parse_args()

    configure_logging()

    exit_code = asyncio.run(
        run_export(
            raw_path=Path(args.raw),
            out_path=Path(args.out),
            images_root=Path(args.images_root),
            timeout=args.timeout,
        )
    )

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
