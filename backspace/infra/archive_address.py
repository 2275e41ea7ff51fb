from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, urlparse

from .. import config


def _normalize_base_url(base: str | None) -> str:
    """
    Normalize a base URL into 'scheme://host[:port]' with no trailing slash.

    Examples:
      - 'archive.org' -> 'https://archive.org'
      - 'http://localhost:8080/' -> 'http://localhost:8080'
    """
    raw = (base or "").strip() or "https://archive.org"
    if not raw.startswith("http://") and not raw.startswith("https://"):
        raw = f"https://{raw}"
    parsed = urlparse(raw)
    scheme = parsed.scheme or "https"
    netloc = parsed.netloc or "archive.org"
    return f"{scheme}://{netloc}"


@dataclass(frozen=True)
class ArchiveAddress:
    base: str

    def base_url(self) -> str:
        return _normalize_base_url(self.base)

    def metadata_url(self, item_id: str) -> str:
        return f"{self.base_url()}/metadata/{quote(str(item_id), safe='')}"

    def cover_url(self, item_id: str) -> str:
        return f"{self.base_url()}/services/img/{quote(str(item_id), safe='')}"

    def search_url(self) -> str:
        return f"{self.base_url()}/advancedsearch.php"


def archive_address_from_config() -> ArchiveAddress:
    return ArchiveAddress(base=str(getattr(config, "ARCHIVE_BASE_URL", "https://archive.org")))
