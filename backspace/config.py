import os

from . import __version__


# Content locations (empty means "relative to the repository root", see project_paths)
CONTENT_DIR: str = os.environ.get("BACKSPACE_CONTENT_DIR", "")
UNITY_DIR: str = os.environ.get("BACKSPACE_UNITY_DIR", "")

# Default importer / exporter config specs (see ConfigRepository for resolution rules)
DEFAULT_IMPORTER: str = os.environ.get("BACKSPACE_IMPORTER", "ia")
DEFAULT_EXPORTER: str = os.environ.get("BACKSPACE_EXPORTER", "Unity/SpaceCraft")
INDEX_DEEP_FILE: str = os.environ.get("BACKSPACE_INDEX_DEEP_FILE", "index-deep.json")


# Internet Archive
ARCHIVE_BASE_URL: str = os.environ.get("ARCHIVE_BASE_URL", "https://archive.org")
ARCHIVE_TIMEOUT_S: float = float(os.environ.get("ARCHIVE_TIMEOUT_S", "30"))
ARCHIVE_USER_AGENT: str = os.environ.get("ARCHIVE_USER_AGENT", f"backspace/{__version__}")
ARCHIVE_SEARCH_ROWS: int = int(os.environ.get("ARCHIVE_SEARCH_ROWS", "100"))
# Base query used by the /api/search endpoint
ARCHIVE_SEARCH_BASE_QUERY: str = os.environ.get(
    "ARCHIVE_SEARCH_BASE_QUERY", "collection:openlibrary AND mediatype:texts"
)


# Content HTTP API
API_HOST: str = os.environ.get("API_HOST", "127.0.0.1")
API_PORT: int = int(os.environ.get("API_PORT", "8617"))
API_DEFAULT_PAGE_SIZE: int = int(os.environ.get("API_DEFAULT_PAGE_SIZE", "20"))


# Logging
LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT: str = "%H:%M:%S"
