"""JSON responses and response middleware."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from werkzeug.wrappers import Response

logger = logging.getLogger(__name__)

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _encode(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"{type(value).__name__} is not JSON serialisable")


def _dumps(payload: Any) -> str:
    text = json.dumps(
        payload,
        default=_encode,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def json_response(code: int, payload: Any) -> Response:
    """Return a JSON response; an unserialisable payload gives an empty 500."""
    try:
        body = _dumps(payload)
    except (TypeError, ValueError) as exc:
        logger.error("Error marshalling JSON: %s", exc)
        return Response(status=500, mimetype="application/json")
    return Response(body, status=code, mimetype="application/json")


def error_response(code: int, message: str, error: BaseException | None) -> Response:
    """Log the error and return ``{"error": message}`` with the given status."""
    if error is not None:
        logger.warning("%s", error)
    if code > 499:
        logger.error("Responding with 5XX error: %s", message)
    return json_response(code, {"error": message})


WSGIApp = Callable[[dict, Callable], Iterable[bytes]]


def no_cache(app: WSGIApp) -> WSGIApp:
    """Wrap a WSGI application so its responses carry ``Cache-Control: no-store``."""

    def wrapped(environ: dict, start_response: Callable) -> Iterable[bytes]:
        def start(status: str, headers: list, exc_info: Any = None) -> Any:
            headers = [
                (name, value) for name, value in headers
                if name.lower() != "cache-control"
            ]
            headers.append(("Cache-Control", "no-store"))
            return start_response(status, headers, exc_info)

        return app(environ, start)

    return wrapped