from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

import requests


@dataclass(frozen=True)
class HttpJsonError(RuntimeError):
    url: str
    status_code: int | None
    message: str
    response_text: str | None = None

    def __str__(self) -> str:  # pragma: no cover
        code = self.status_code if self.status_code is not None else "unknown"
        return f"HTTP {code} for {self.url}: {self.message}"


def get_json(
    url: str,
    *,
    session: Any = None,
    params: Mapping[str, Any] | None = None,
    timeout_s: float = 10.0,
    headers: Mapping[str, str] | None = None,
) -> dict:
    http = session or requests
    try:
        resp = http.get(str(url), params=dict(params or {}), headers=dict(headers or {}), timeout=float(timeout_s))
    except requests.RequestException as e:
        raise HttpJsonError(url=str(url), status_code=None, message=str(e)) from e
    if resp.status_code // 100 != 2:
        raise HttpJsonError(url=str(url), status_code=int(resp.status_code), message=resp.text[:500], response_text=resp.text)
    try:
        return resp.json() or {}
    except ValueError as e:
        raise HttpJsonError(url=str(url), status_code=int(resp.status_code), message=f"Invalid JSON response: {e}", response_text=resp.text) from e


def download_file(
    url: str,
    dest_path: str,
    *,
    session: Any = None,
    timeout_s: float = 30.0,
    headers: Mapping[str, str] | None = None,
    chunk_size: int = 64 * 1024,
) -> int:
    """Stream `url` into `dest_path` and return the number of bytes written."""
    http = session or requests
    try:
        resp = http.get(str(url), headers=dict(headers or {}), timeout=float(timeout_s), stream=True)
    except requests.RequestException as e:
        raise HttpJsonError(url=str(url), status_code=None, message=str(e)) from e
    with resp:
        if resp.status_code // 100 != 2:
            raise HttpJsonError(url=str(url), status_code=int(resp.status_code), message=f"Download failed ({resp.reason})")

        os.makedirs(os.path.dirname(os.path.abspath(dest_path)), exist_ok=True)
        written = 0
        try:
            with open(dest_path, "wb") as fh:
                for chunk in resp.iter_content(chunk_size=int(chunk_size)):
                    if not chunk:
                        continue
                    fh.write(chunk)
                    written += len(chunk)
        except (OSError, requests.RequestException):
            # no partial file left behind
            if os.path.exists(dest_path):
                os.remove(dest_path)
            raise
    return written
