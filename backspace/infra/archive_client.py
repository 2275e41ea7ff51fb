from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .. import config
from .archive_address import ArchiveAddress, archive_address_from_config
from .http_client import HttpJsonError, download_file, get_json

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_FIELDS: Tuple[str, ...] = ("identifier", "title", "creator", "date", "mediatype", "subject", "description")


class ArchiveClient:
    """
    Read-only access to the archive.org metadata, cover image and advanced search endpoints.

    `receipt` is duck-typed (anything with `increment`/`add`); when given, API calls and
    cover downloads are counted into it.
    """

    def __init__(
        self,
        session: Any = None,
        address: Optional[ArchiveAddress] = None,
        timeout_s: Optional[float] = None,
        receipt: Any = None,
    ) -> None:
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": config.ARCHIVE_USER_AGENT})
        self.session = session
        self.address = address or archive_address_from_config()
        self.timeout_s = float(timeout_s if timeout_s is not None else config.ARCHIVE_TIMEOUT_S)
        self.receipt = receipt

    def _count(self, key: str, amount: float = 1) -> None:
        if self.receipt is not None:
            self.receipt.increment(key, amount)

    def metadata_url(self, item_id: str) -> str:
        return self.address.metadata_url(item_id)

    def cover_url(self, item_id: str) -> str:
        return self.address.cover_url(item_id)

    def fetch_metadata(self, item_id: str) -> Dict[str, Any]:
        """Return the `metadata` object of an item, raising HttpJsonError when there is none."""
        url = self.metadata_url(item_id)
        logger.debug(f"GET {url}")
        started = time.monotonic()
        self._count("api_calls_total")
        try:
            payload = get_json(url, session=self.session, timeout_s=self.timeout_s)
        except HttpJsonError:
            self._count("api_errors_count")
            raise
        finally:
            self._count("api_performance_totalTime", time.monotonic() - started)

        metadata = payload.get("metadata")
        if not isinstance(metadata, dict):
            # archive.org answers unknown identifiers with 200 and an empty object
            self._count("api_errors_count")
            raise HttpJsonError(url=url, status_code=200, message=f"No metadata found for {item_id}")
        return metadata

    def download_cover(self, source: str, dest_path: str) -> int:
        """Download a cover by URL (or by item id, using the services/img endpoint)."""
        url = source if str(source).startswith(("http://", "https://")) else self.cover_url(source)
        logger.debug(f"Downloading cover {url} -> {dest_path}")
        started = time.monotonic()
        try:
            size = download_file(url, dest_path, session=self.session, timeout_s=self.timeout_s)
        except (HttpJsonError, OSError):
            self._count("cover_download_errors")
            raise
        self._count("cover_download_count")
        self._count("cover_download_totalBytes", size)
        self._count("cover_download_totalTime", time.monotonic() - started)
        return size

    def search(
        self,
        query: str,
        *,
        rows: Optional[int] = None,
        page: int = 1,
        fields: Sequence[str] = DEFAULT_SEARCH_FIELDS,
        sort: Sequence[str] = ("downloads desc",),
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Run an advancedsearch query; returns (docs, numFound)."""
        params: Dict[str, Any] = {
            "q": query,
            "fl[]": list(fields),
            "sort[]": list(sort),
            "rows": int(rows if rows is not None else config.ARCHIVE_SEARCH_ROWS),
            "page": max(1, int(page)),
            "output": "json",
        }
        self._count("api_calls_total")
        payload = get_json(self.address.search_url(), session=self.session, params=params, timeout_s=self.timeout_s)
        response = payload.get("response") or {}
        docs = [d for d in (response.get("docs") or []) if isinstance(d, dict)]
        return docs, int(response.get("numFound") or 0)
