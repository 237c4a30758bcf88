"""SQLite storage for users, refresh tokens and videos."""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        password TEXT NOT NULL,
        email TEXT UNIQUE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS refresh_tokens (
        token TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        revoked_at TIMESTAMP,
        user_id TEXT NOT NULL,
        expires_at TIMESTAMP NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        id TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        title TEXT NOT NULL,
        description TEXT,
        thumbnail_url TEXT,
        video_url TEXT,
        user_id TEXT,
        FOREIGN KEY(user_id) REFERENCES users(id)
    )
    """,
)

_VIDEO_COLUMNS = (
    "id, created_at, updated_at, title, description, thumbnail_url, video_url, user_id"
)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_time(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_utc(value)
    return _to_utc(datetime.fromisoformat(str(value)))


def _store_time(value: datetime) -> str:
    return _to_utc(value).isoformat(sep=" ")


def _format_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    return _to_utc(value).isoformat().replace("+00:00", "Z")


@dataclass
class User:
    """A registered user; ``password`` holds the password hash."""

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    email: str
    password: str

    def to_dict(self) -> dict[str, Any]:
        """Return the user as a JSON-ready mapping."""
        return {
            "id": str(self.id),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "email": self.email,
            "password": self.password,
        }


@dataclass
class RefreshToken:
    """A refresh token issued to a user."""

    token: str
    user_id: uuid.UUID
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    revoked_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the token as a JSON-ready mapping."""
        return {
            "token": self.token,
            "user_id": str(self.user_id),
            "expires_at": _format_time(self.expires_at),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "revoked_at": _format_time(self.revoked_at),
        }


@dataclass
class Video:
    """Video metadata, with optional thumbnail and video URLs."""

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    title: str
    description: str
    user_id: uuid.UUID
    thumbnail_url: str | None = field(default=None)
    video_url: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """Return the video as a JSON-ready mapping."""
        return {
            "id": str(self.id),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "thumbnail_url": self.thumbnail_url,
            "video_url": self.video_url,
            "title": self.title,
            "description": self.description,
            "user_id": str(self.user_id),
        }


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=uuid.UUID(row["id"]),
        created_at=_parse_time(row["created_at"]),
        updated_at=_parse_time(row["updated_at"]),
        email=row["email"],
        password=row["password"],
    )


def _video_from_row(row: sqlite3.Row) -> Video:
    return Video(
        id=uuid.UUID(row["id"]),
        created_at=_parse_time(row["created_at"]),
        updated_at=_parse_time(row["updated_at"]),
        title=row["title"],
        description=row["description"] or "",
        user_id=uuid.UUID(row["user_id"]),
        thumbnail_url=row["thumbnail_url"],
        video_url=row["video_url"],
    )


class Database:
    """A connection to the application's SQLite database."""

    def __init__(self, path: str) -> None:
        self._conn = sqlite3.connect(
            path, check_same_thread=False, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        try:
            for statement in _SCHEMA:
                self._conn.execute(statement)
        except sqlite3.Error:
            self._conn.close()
            raise

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def reset(self) -> None:
        """Delete every row from every table."""
        for table in ("refresh_tokens", "users", "videos"):
            try:
                self._conn.execute(f"DELETE FROM {table}")
            except sqlite3.Error as exc:
                raise sqlite3.DatabaseError(
                    f"failed to reset table {table}: {exc}"
                ) from exc

    # Refresh tokens

    def create_refresh_token(
        self, token: str, user_id: uuid.UUID, expires_at: datetime
    ) -> RefreshToken | None:
        """Store a refresh token and return it as saved."""
        self._conn.execute(
            """
            INSERT INTO refresh_tokens (token, created_at, updated_at, user_id, expires_at)
            VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?)
            """,
            (token, str(user_id), _store_time(expires_at)),
        )
        return self.get_refresh_token(token)

    def revoke_refresh_token(self, token: str) -> None:
        """Mark a refresh token as revoked now."""
        self._conn.execute(
            "UPDATE refresh_tokens SET revoked_at = CURRENT_TIMESTAMP WHERE token = ?",
            (token,),
        )

    def get_refresh_token(self, token: str) -> RefreshToken | None:
        """Return the refresh token, or None if it does not exist."""
        row = self._conn.execute(
            """
            SELECT token, created_at, updated_at, user_id, expires_at, revoked_at
            FROM refresh_tokens WHERE token = ?
            """,
            (token,),
        ).fetchone()
        if row is None:
            return None
        return RefreshToken(
            token=row["token"],
            user_id=uuid.UUID(row["user_id"]),
            expires_at=_parse_time(row["expires_at"]),
            created_at=_parse_time(row["created_at"]),
            updated_at=_parse_time(row["updated_at"]),
            revoked_at=_parse_time(row["revoked_at"]),
        )

    def delete_refresh_token(self, token: str) -> None:
        """Remove a refresh token."""
        self._conn.execute("DELETE FROM refresh_tokens WHERE token = ?", (token,))

    # Users

    def get_users(self) -> list[User]:
        """Return every user."""
        rows = self._conn.execute(
            "SELECT id, created_at, updated_at, email, password FROM users"
        )
        return [_user_from_row(row) for row in rows]

    def get_user_by_email(self, email: str) -> User | None:
        """Return the user with this e-mail address, or None."""
        row = self._conn.execute(
            "SELECT id, created_at, updated_at, email, password FROM users WHERE email = ?",
            (email,),
        ).fetchone()
        return None if row is None else _user_from_row(row)

    def get_user_by_refresh_token(self, token: str) -> User | None:
        """Return the user a refresh token was issued to, or None."""
        row = self._conn.execute(
            """
            SELECT u.id, u.email, u.created_at, u.updated_at, u.password
            FROM users u
            JOIN refresh_tokens rt ON u.id = rt.user_id
            WHERE rt.token = ?
            """,
            (token,),
        ).fetchone()
        return None if row is None else _user_from_row(row)

    def create_user(self, email: str, password: str) -> User | None:
        """Insert a user with a fresh id and return it as saved."""
        user_id = uuid.uuid4()
        self._conn.execute(
            """
            INSERT INTO users (id, created_at, updated_at, email, password)
            VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?)
            """,
            (str(user_id), email, password),
        )
        return self.get_user(user_id)

    def get_user(self, user_id: uuid.UUID) -> User | None:
        """Return the user with this id, or None."""
        row = self._conn.execute(
            "SELECT id, created_at, updated_at, email, password FROM users WHERE id = ?",
            (str(user_id),),
        ).fetchone()
        return None if row is None else _user_from_row(row)

    def delete_user(self, user_id: uuid.UUID) -> None:
        """Remove a user."""
        self._conn.execute("DELETE FROM users WHERE id = ?", (str(user_id),))

    # Videos

    def get_videos(self, user_id: uuid.UUID) -> list[Video]:
        """Return a user's videos, newest first."""
        rows = self._conn.execute(
            f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE user_id = ? ORDER BY created_at DESC",
            (str(user_id),),
        )
        return [_video_from_row(row) for row in rows]

    def create_video(
        self, title: str, description: str, user_id: uuid.UUID
    ) -> Video | None:
        """Insert a video with a fresh id and return it as saved."""
        video_id = uuid.uuid4()
        self._conn.execute(
            """
            INSERT INTO videos (id, created_at, updated_at, title, description, user_id)
            VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?, ?)
            """,
            (str(video_id), title, description, str(user_id)),
        )
        return self.get_video(video_id)

    def get_video(self, video_id: uuid.UUID) -> Video | None:
        """Return the video with this id, or None."""
        row = self._conn.execute(
            f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE id = ?",
            (str(video_id),),
        ).fetchone()
        return None if row is None else _video_from_row(row)

    def update_video(self, video: Video) -> None:
        """Write a video's editable fields back to storage."""
        self._conn.execute(
            """
            UPDATE videos
            SET title = ?, description = ?, thumbnail_url = ?, video_url = ?, user_id = ?
            WHERE id = ?
            """,
            (
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                str(video.user_id),
                str(video.id),
            ),
        )

    def delete_video(self, video_id: uuid.UUID) -> None:
        """Remove a video."""
        self._conn.execute("DELETE FROM videos WHERE id = ?", (str(video_id),))