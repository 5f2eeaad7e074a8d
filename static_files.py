import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger("ark_proxy.static")

MIME_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".txt": "text/plain; charset=utf-8",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


class StaticFileError(Exception):
    status_code = 500
    message = "Internal Server Error"


class StaticFileNotFound(StaticFileError):
    status_code = 404
    message = "Not Found"


class StaticFileForbidden(StaticFileError):
    status_code = 403
    message = "Forbidden"


@dataclass(frozen=True)
class StaticFile:
    path: Path
    media_type: str


def guess_media_type(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


class StaticFileResolver:
    """
    Maps request paths to files below a fixed root.

    The request path is normalized first, then the joined candidate is
    resolved (symlinks included) and must still be a descendant of the
    resolved root. Dotfiles are never served.
    """

    def __init__(self, root: Path, index_file: str):
        self.root = Path(root).resolve()
        self.index_file = index_file

    def normalize(self, request_path: str) -> str:
        request_path = request_path.replace("\\", "/")
        if request_path in ("", "/"):
            request_path = "/" + self.index_file
        # Anchored at "/" so ".." segments cannot climb above it
        normalized = posixpath.normpath("/" + request_path.lstrip("/"))
        return normalized.lstrip("/")

    def resolve(self, request_path: str) -> StaticFile:
        relative = self.normalize(request_path)
        parts = [p for p in relative.split("/") if p]
        if not parts:
            raise StaticFileNotFound()
        if any(p.startswith(".") for p in parts):
            raise StaticFileForbidden()

        try:
            candidate = self.root.joinpath(*parts).resolve()
        except (OSError, ValueError, RuntimeError):
            raise StaticFileNotFound()

        if not candidate.is_relative_to(self.root):
            logger.warning("Blocked static path escaping root: %r", request_path)
            raise StaticFileForbidden()

        try:
            is_file = candidate.is_file()
        except (OSError, ValueError):
            is_file = False
        if not is_file:
            raise StaticFileNotFound()

        return StaticFile(path=candidate, media_type=guess_media_type(candidate))
