"""
=============================================================================
STATIC FILES
=============================================================================

Serves the stylesheet (and anything else) under ``/static/``.

    GET /static/style.css
        1. path_params["path"] = "style.css"
        2. resolve under root_dir; outside it → 403
        3. directory → its index.html, otherwise 404
        4. ETag matches If-None-Match → 304, no body
        5. otherwise 200 with Content-Type, ETag, Last-Modified,
           Cache-Control

Static requests are not access-logged.

=============================================================================
"""

import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Union

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, format_http_date,
    not_found, forbidden, method_not_allowed,
)
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

STATIC_METHODS = ("GET", "HEAD")


class StaticFileHandler:
    """
    Serves files from one directory.

        static = StaticFileHandler(config.static_dir)
        router.add_route("/static/*path", static.handle)

    Args:
        root_dir: Directory to serve. Nothing outside it is reachable.
        index_file: Served for a request naming a directory.
        cache_max_age: Cache-Control max-age in seconds.
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        index_file: str = "index.html",
        cache_max_age: int = 3600,
    ):
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file
        self.cache_max_age = cache_max_age

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in STATIC_METHODS:
            return method_not_allowed(list(STATIC_METHODS))

        file_path = request.path_params.get("path", "").lstrip("/")
        full_path = (self.root_dir / file_path).resolve()

        # Symlinks and ".." must not lead out of the root
        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning("Path traversal attempt: %s", file_path)
            return forbidden()

        if full_path.is_dir():
            full_path = full_path / self.index_file

        if not full_path.is_file():
            return not_found()

        return self._serve_file(full_path, request)

    def _serve_file(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        """
        Send ``path``, or 304 when the client's cached copy is current.

        The ETag is derived from mtime and size, so any edit changes it.
        """
        try:
            stat = path.stat()
            etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

            if request.get_header("if-none-match") == etag:
                return (ResponseBuilder()
                    .status(HTTPStatus.NOT_MODIFIED)
                    .header("ETag", etag)
                    .build())

            content = path.read_bytes()
        except PermissionError:
            return forbidden()

        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return (ResponseBuilder()
            .file(content, path.name)
            .header("ETag", etag)
            .header("Last-Modified", format_http_date(mtime))
            .cache(self.cache_max_age)
            .build())
