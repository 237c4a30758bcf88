# tubely

A small WSGI server for a video-sharing site. It keeps users, refresh tokens
and video metadata in a SQLite database, serves a front-end and uploaded
assets from local directories, and has helpers that prepare MP4 files for
streaming with `ffprobe` and `ffmpeg`.

## Installation

```
pip install .
```

The helpers in `tubely.media` need `ffprobe` and `ffmpeg` on the `PATH`.

## Configuration

The server is configured through environment variables. When started with
the `tubely` command, a `.env` file in the working directory is read first,
if present. Every variable is required; the server refuses to start when one
is missing or empty, and when `PORT` is not a number.

| Variable        | Meaning                                                     |
|-----------------|-------------------------------------------------------------|
| `DB_PATH`       | Path of the SQLite database file (created if needed)        |
| `JWT_SECRET`    | Required, but not used by any route the server has          |
| `PLATFORM`      | Deployment platform; `dev` enables `POST /admin/reset`      |
| `FILEPATH_ROOT` | Directory served under `/app/`                              |
| `ASSETS_ROOT`   | Directory served under `/assets/`; created if missing       |
| `S3_BUCKET`     | Required, read into the configuration                       |
| `S3_REGION`     | Required, read into the configuration                       |
| `S3_CF_DISTRO`  | Required, read into the configuration                       |
| `PORT`          | Port to listen on                                           |

An example `.env`:

```
DB_PATH=tubely.db
JWT_SECRET=secret
PLATFORM=dev
FILEPATH_ROOT=./app
ASSETS_ROOT=./assets
S3_BUCKET=tubely-videos
S3_REGION=us-east-1
S3_CF_DISTRO=https://cdn.example.com
PORT=8091
```

## Running

```
tubely
```

The server listens on all interfaces at the configured port; the front-end is
then at `http://localhost:<PORT>/app/`. A request for a directory under
`/app/` or `/assets/` is answered with that directory's `index.html`.
Everything under `/assets/` is served with `Cache-Control: no-store`.

## Routes

* `GET /api/videos/{videoID}` – the video as JSON; `400` with
  `{"error": "Invalid video ID"}` if the id is not a UUID, `404` if there is
  no such video.
* `POST /admin/reset` – deletes every row from every table when
  `PLATFORM=dev`; otherwise answers `403` with a plain-text message.
* `/app/...` and `/assets/...` – static files.

Errors from the API are JSON objects of the form `{"error": "..."}`.

## What the server does not do

The server has no routes for signing up, logging in, refreshing or revoking
tokens, creating, listing or deleting videos, or uploading thumbnails and
videos. It checks no access tokens, and it does not send files to a storage
bucket: the bucket, region and distribution settings are read but not used.
The database layer and the media helpers below can be used to build those
parts.

## Modules

* `tubely.database` – `Database(path)` opens or creates the SQLite file and
  its tables, and can be used as a context manager. It has methods to create,
  fetch and delete users (`create_user`, `get_user`, `get_user_by_email`,
  `get_user_by_refresh_token`, `get_users`, `delete_user`), refresh tokens
  (`create_refresh_token`, `get_refresh_token`, `revoke_refresh_token`,
  `delete_refresh_token`) and videos (`create_video`, `get_video`,
  `get_videos`, `update_video`, `delete_video`), plus `reset()`. Lookups
  return `None` when nothing matches. Records are the dataclasses `User`,
  `RefreshToken` and `Video`, each with `to_dict()`.
* `tubely.assets` – `media_type_to_ext`, `get_asset_path` (a random URL-safe
  name with an extension), `ensure_assets_dir`, `asset_disk_path`,
  `asset_url` and `object_url`.
* `tubely.media` – `get_video_aspect_ratio` runs `ffprobe` and returns
  `"16:9"`, `"9:16"` or `"other"`; `aspect_ratio_from_probe` does the same
  for ffprobe JSON already in hand; `aspect_ratio_prefix` maps a ratio to
  `"landscape"`, `"portrait"` or `"other"`; `process_video_for_fast_start`
  runs `ffmpeg` to write `<file>.processing` with its index at the front.
  Failures raise `MediaError`.
* `tubely.responses` – `json_response`, `error_response` and the WSGI
  wrapper `no_cache`.
* `tubely.app` – `Config` (with `Config.from_env`, raising `ConfigError`),
  `create_app(config)` returning the WSGI application, and `main`, which the
  `tubely` command runs.

```python
from tubely.database import Database
from tubely.assets import get_asset_path, media_type_to_ext

password = "password"
with Database("tubely.db") as db:
    user = db.create_user("someone@example.com", password)
    video = db.create_video("Holiday", "At the beach", user.id)
    print(video.to_dict())

print(media_type_to_ext("video/mp4"))   # ".mp4"
print(get_asset_path("image/png"))      # random name ending in ".png"
```

## Tests

```
pip install .[test]
pytest
```