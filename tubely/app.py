"""The HTTP application: configuration, routes and the server command."""

from __future__ import annotations

import argparse
import logging
import os
import sqlite3
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, fields

from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.dispatcher import DispatcherMiddleware
from werkzeug.routing import Map, Rule
from werkzeug.serving import run_simple
from werkzeug.utils import send_from_directory
from werkzeug.wrappers import Request, Response

from .assets import ensure_assets_dir
from .database import Database
from .responses import error_response, json_response, no_cache

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """A required setting is missing."""


@dataclass(frozen=True)
class Config:
    """Settings the server runs with.

    Each setting is read from the environment variable named after the field
    in upper case, unless the field's metadata names another one.
    """

    db_path: str = field(metadata={"missing": "DB_URL must be set"})
    jwt_secret: str
    platform: str
    filepath_root: str
    assets_root: str
    s3_bucket: str
    s3_region: str
    s3_cf_distribution: str = field(metadata={"env": "S3_CF_DISTRO"})
    port: str

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Read every setting from the environment; raise ConfigError if one is empty."""
        if environ is None:
            environ = os.environ
        values = {}
        for item in fields(cls):
            name = item.metadata.get("env", item.name.upper())
            value = environ.get(name, "")
            if not value:
                message = item.metadata.get(
                    "missing", f"{name} environment variable is not set"
                )
                raise ConfigError(message)
            values[item.name] = value
        return cls(**values)


def _static_files(root: str) -> Callable:
    def serve(environ: dict, start_response: Callable) -> Iterable[bytes]:
        relative = environ.get("PATH_INFO", "").lstrip("/")
        if not relative or relative.endswith("/"):
            relative += "index.html"
        try:
            response = send_from_directory(root, relative, environ)
        except HTTPException as exc:
            response = exc
        return response(environ, start_response)

    return serve


class _Application:
    """WSGI application serving the API, the web client and uploaded assets."""

    def __init__(self, config: Config, db: Database) -> None:
        self.config = config
        self.db = db
        self._urls = Map([
            Rule("/api/videos/<video_id>", endpoint="video_get", methods=["GET"]),
            Rule("/admin/reset", endpoint="reset", methods=["POST"]),
        ])
        self._handlers = {"video_get": self._video_get, "reset": self._reset}
        self._wsgi = DispatcherMiddleware(self._api, {
            "/app": _static_files(config.filepath_root),
            "/assets": no_cache(_static_files(config.assets_root)),
        })

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        return self._wsgi(environ, start_response)

    def close(self) -> None:
        """Release the database connection."""
        self.db.close()

    def _api(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        request = Request(environ)
        adapter = self._urls.bind_to_environ(environ)
        try:
            endpoint, args = adapter.match()
            response = self._handlers[endpoint](request, **args)
        except HTTPException as exc:
            response = exc
        return response(environ, start_response)

    def _video_get(self, request: Request, video_id: str) -> Response:
        try:
            parsed = uuid.UUID(video_id)
        except ValueError as exc:
            return error_response(400, "Invalid video ID", exc)
        try:
            video = self.db.get_video(parsed)
        except sqlite3.Error as exc:
            return error_response(404, "Couldn't get video", exc)
        if video is None:
            return error_response(404, "Couldn't get video", None)
        return json_response(200, video)

    def _reset(self, request: Request) -> Response:
        if self.config.platform != "dev":
            return Response(
                "Reset is only allowed in dev environment.",
                status=403,
                mimetype="text/plain",
            )
        try:
            self.db.reset()
        except sqlite3.Error as exc:
            return error_response(500, "Couldn't reset database", exc)
        return Response("Database reset to initial state", status=200, mimetype="text/plain")


def create_app(config: Config) -> _Application:
    """Open the database, make sure the assets directory exists and build the app."""
    db = Database(config.db_path)
    try:
        ensure_assets_dir(config.assets_root)
    except OSError:
        db.close()
        raise
    return _Application(config, db)


def main(argv: list[str] | None = None) -> int:
    """Load settings and serve the application until interrupted."""
    parser = argparse.ArgumentParser(prog="tubely", description="Serve the video API.")
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    load_dotenv(".env")

    try:
        config = Config.from_env(os.environ)
        port = int(config.port)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1
    except ValueError as exc:
        logger.error("Invalid PORT: %s", exc)
        return 1

    try:
        db = Database(config.db_path)
    except sqlite3.Error as exc:
        logger.error("Couldn't connect to database: %s", exc)
        return 1
    try:
        ensure_assets_dir(config.assets_root)
    except OSError as exc:
        db.close()
        logger.error("Couldn't create assets directory: %s", exc)
        return 1

    app = _Application(config, db)
    logger.info("Serving on: http://localhost:%s/app/", config.port)
    try:
        run_simple("0.0.0.0", port, app)
    finally:
        app.close()
    return 0