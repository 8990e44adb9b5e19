import os
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import DisallowedExtension, FileReadError, NotFound, ResolutionError
from .utils import resolve_path

logger = logging.getLogger(__name__)

SUCCESS = 20
NOT_FOUND = 51
BAD_REQUEST = 59

# Seuls ces types sont servis ; tout le reste est traité comme absent.
MIME_TYPES = {
    "gmi": "text/gemini",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}


@dataclass(frozen=True)
class GeminiResponse:
    status: int
    mime_type: Optional[str] = None
    body: Optional[bytes] = None

    def header(self) -> bytes:
        if self.mime_type:
            return f"{self.status}\t{self.mime_type}\r\n".encode("utf-8")
        return f"{self.status}\r\n".encode("utf-8")

    def to_bytes(self) -> bytes:
        return self.header() + (self.body or b"")


def guess_mime_type(path: str) -> Optional[str]:
    ext = os.path.splitext(path)[1]
    return MIME_TYPES.get(ext[1:]) if ext else None


def locate(root: str, path: str):
    """Renvoie (fichier, type MIME) ou lève une ResolutionError."""
    filename = resolve_path(root, path)
    if not os.path.isfile(filename):
        raise NotFound(f"No such file {filename}")
    mime_type = guess_mime_type(filename)
    if mime_type is None:
        raise DisallowedExtension(f"Cannot guess mime type {filename}")
    return filename, mime_type


def build_response(root: str, path: str, log=logger.info) -> GeminiResponse:
    try:
        filename, mime_type = locate(root, path)
    except ResolutionError as e:
        log(str(e))
        return GeminiResponse(NOT_FOUND)

    log(f"Opening file {filename}")
    try:
        with open(filename, "rb") as f:
            data = f.read()
    except OSError as e:
        raise FileReadError(f"Failed to read file {path}") from e
    return GeminiResponse(SUCCESS, mime_type, data)
