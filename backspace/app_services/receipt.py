from __future__ import annotations

import copy
import inspect
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger("backspace.pipeline")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PipelineReceipt:
    """
    Metrics and log entries for one pipeline run.

    Keys are flat and underscore separated (`item_exported_count`, `cover_download_totalBytes`,
    `perf_exportPhase_totalTime`, ...). The receipt is what gets written next to an export.
    """

    def __init__(self, run_id: Optional[str] = None) -> None:
        self._started = time.monotonic()
        self._data: Dict[str, Any] = {
            "run_id": run_id or datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"),
            "perf_startTime": utc_now_iso(),
            "download_name": "",
            "download_ipAddress": "",
            "download_geoLocation": "",
            "api_calls_total": 0,
            "api_errors_count": 0,
            "api_performance_totalTime": 0.0,
            "collection_processed_count": 0,
            "collection_exported_count": 0,
            "collection_filtered_count": 0,
            "item_processed_count": 0,
            "item_updated_count": 0,
            "item_skipped_count": 0,
            "item_exported_count": 0,
            "item_filtered_count": 0,
            "item_refined_count": 0,
            "cover_processed_count": 0,
            "cover_custom_used": 0,
            "cover_download_count": 0,
            "cover_download_errors": 0,
            "cover_download_totalBytes": 0,
            "cover_download_totalTime": 0.0,
            "error_count": 0,
            "warning_count": 0,
            "error_list": [],
            "warning_list": [],
            "info_list": [],
        }

    # Metric primitives

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def increment(self, key: str, amount: float = 1) -> None:
        self._data[key] = self._data.get(key, 0) + amount

    def add(self, key: str, value: Any) -> None:
        """Add to a number, extend a list, or set the key when it is unset."""
        current = self._data.get(key)
        if current is None:
            self._data[key] = value
        elif isinstance(current, list):
            current.extend(value if isinstance(value, list) else [value])
        else:
            self._data[key] = current + value

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def push(self, key: str, value: Any) -> None:
        self._data.setdefault(key, []).append(value)

    def set_download_info(self, name: str = "", ip_address: str = "", geo_location: str = "") -> None:
        self._data["download_name"] = str(name or "")
        self._data["download_ipAddress"] = str(ip_address or "")
        self._data["download_geoLocation"] = str(geo_location or "")

    # Logging

    def _entry(self, level: str, message: str, error: Optional[BaseException], context: Dict[str, Any]) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "timestamp": utc_now_iso(),
            "level": level,
            "message": str(message),
            "function": context.pop("function", None) or _caller_name(),
            "collectionId": context.pop("collection_id", None),
            "itemId": context.pop("item_id", None),
        }
        if error is not None:
            entry["error"] = str(error)
        entry.update(context)
        return entry

    def info(self, message: str, **context: Any) -> None:
        logger.info(message)
        self.push("info_list", self._entry("info", message, None, context))

    def success(self, message: str, **context: Any) -> None:
        logger.info(message)
        self.push("info_list", self._entry("success", message, None, context))

    def warn(self, message: str, **context: Any) -> None:
        logger.warning(message)
        self.increment("warning_count")
        self.push("warning_list", self._entry("warning", message, None, context))

    def error(self, message: str, error: Optional[BaseException] = None, **context: Any) -> None:
        logger.error(f"{message}: {error}" if error is not None else message)
        self.increment("error_count")
        self.push("error_list", self._entry("error", message, error, context))

    # Output

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def finalize(self) -> Dict[str, Any]:
        """Stamp end time and derived averages, then return a copy of the receipt."""
        duration = time.monotonic() - self._started
        self._data["perf_endTime"] = utc_now_iso()
        self._data["perf_total_duration"] = round(duration, 3)

        dl_time = float(self._data.get("cover_download_totalTime") or 0.0)
        dl_bytes = float(self._data.get("cover_download_totalBytes") or 0)
        self._data["cover_download_avgSpeed_mbps"] = round((dl_bytes * 8 / 1_000_000) / dl_time, 3) if dl_time > 0 else 0.0

        calls = int(self._data.get("api_calls_total") or 0)
        api_time = float(self._data.get("api_performance_totalTime") or 0.0)
        self._data["api_performance_avgResponseTime"] = round(api_time / calls, 4) if calls else 0.0
        return self.snapshot()


def _caller_name() -> str:
    # frame 0 is here, 1 is _entry, 2 is info/warn/error, 3 is the caller
    stack = inspect.stack(context=0)
    try:
        return stack[3].function if len(stack) > 3 else ""
    finally:
        del stack


def result(status: str, receipt: PipelineReceipt, error: Optional[str] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"status": status, "receipt": receipt.snapshot()}
    if error is not None:
        out["error"] = error
    return out

