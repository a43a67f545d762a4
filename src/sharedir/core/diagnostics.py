"""Diagnostics envelopes and operation observation.

Schema of every published envelope:
    {
      "event": "<string>",
      "component": "<string>",
      "operation": "<string>",
      "timestamp": "<iso8601 utc>",
      "data": { ... }
    }

``install_jsonl_sink`` persists every event, log records included, as JSON
lines when diagnostics are enabled (``diagnostics.enabled``).
"""

from __future__ import annotations

import json
import threading
import time
import traceback
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sharedir.core.events import get_event_bus
from sharedir.core.logging import LOG_RECORD_EVENT, get_logger

_logger = get_logger(__name__)


def build_envelope(
    *,
    event: str,
    component: str,
    operation: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Build the canonical diagnostics envelope (timestamp in UTC with 'Z')."""
    ts = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return {
        "event": event,
        "component": component,
        "operation": operation,
        "timestamp": ts,
        "data": data,
    }


def short_traceback(*, max_lines: int = 20) -> str:
    tb_lines = traceback.format_exc().strip().splitlines()
    if len(tb_lines) <= max_lines:
        return "\n".join(tb_lines)
    return "\n".join(tb_lines[-max_lines:])


def safe_publish(event: str, payload: dict[str, Any]) -> None:
    try:
        get_event_bus().publish(event, payload)
    except Exception:
        # Diagnostics must never break the operation being observed.
        return


@contextmanager
def observe_operation(
    *,
    component: str,
    operation: str,
    base: dict[str, Any],
) -> Iterator[dict[str, Any]]:
    """Publish operation.start/operation.end around a block.

    The yielded dict is merged into the end envelope, so the block can report
    counters such as ``items_count`` or ``bytes``. A single summary line is
    logged on end.
    """
    start = time.perf_counter()

    safe_publish(
        "operation.start",
        build_envelope(
            event="operation.start",
            component=component,
            operation=operation,
            data=dict(base),
        ),
    )

    summary: dict[str, Any] = {}
    try:
        yield summary
    except GeneratorExit:
        # Consumer stopped iterating (client went away).
        end_data = dict(base)
        end_data.update(summary)
        end_data.update(
            {"status": "cancelled", "duration_ms": int((time.perf_counter() - start) * 1000)}
        )
        safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end",
                component=component,
                operation=operation,
                data=end_data,
            ),
        )
        _logger.info(f"{operation} status=cancelled", **base)
        raise
    except Exception as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(summary)
        end_data.update(
            {
                "status": "failed",
                "duration_ms": duration_ms,
                "error_type": type(e).__name__,
                "error_message": str(e),
                "traceback": short_traceback(),
            }
        )
        safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end",
                component=component,
                operation=operation,
                data=end_data,
            ),
        )
        _logger.warning(
            f"{operation} status=failed",
            duration_ms=duration_ms,
            error_type=type(e).__name__,
            **base,
        )
        raise
    else:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(summary)
        end_data.update({"status": "succeeded", "duration_ms": duration_ms})
        safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end",
                component=component,
                operation=operation,
                data=end_data,
            ),
        )
        fields = {k: v for k, v in end_data.items() if k != "status"}
        _logger.verbose(f"{operation} status=succeeded", **fields)


def _is_envelope(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    if set(obj.keys()) != {"event", "component", "operation", "timestamp", "data"}:
        return False
    return isinstance(obj.get("data"), dict)


def install_jsonl_sink(path: str | Path) -> Callable[[str, dict[str, Any]], None]:
    """Append every published event to ``path``, one JSON object per line.

    Operation and boundary envelopes are written as-is; log records are
    wrapped in an envelope with component ``log`` and the logger name as the
    operation. Returns the subscriber so it can be removed again.
    """
    out_path = Path(path).expanduser()
    lock = threading.Lock()

    def _on_any_event(event: str, data: dict[str, Any]) -> None:
        if _is_envelope(data):
            payload = data
        elif event == LOG_RECORD_EVENT:
            payload = build_envelope(
                event=event,
                component="log",
                operation=str(data.get("logger_name", "unknown")),
                data=data,
            )
        else:
            payload = build_envelope(
                event=event, component="unknown", operation="unknown", data=data
            )

        line = json.dumps(
            payload, ensure_ascii=True, separators=(",", ":"), sort_keys=True, default=str
        )
        try:
            with lock:
                out_path.parent.mkdir(parents=True, exist_ok=True)
                with out_path.open("a", encoding="utf-8") as f:
                    f.write(line)
                    f.write("\n")
        except OSError as e:
            if event == LOG_RECORD_EVENT:
                raise
            _logger.warning(f"Diagnostics sink write failed: {type(e).__name__}: {e}")

    get_event_bus().subscribe_all(_on_any_event)
    return _on_any_event
