from dataclasses import dataclass
from urllib.parse import urlsplit

from .config import PORT
from .errors import InvalidRequest

SCHEME = "gemini"


def _host(netloc: str) -> str:
    # urlsplit().hostname met en minuscules ; on garde la casse envoyée
    hostinfo = netloc.rpartition("@")[2]
    if hostinfo.startswith("["):
        return hostinfo[1:].partition("]")[0]
    return hostinfo.partition(":")[0]


@dataclass(frozen=True)
class GeminiUrl:
    scheme: str
    hostname: str
    port: int
    path: str

    def __str__(self):
        return f"{self.scheme}://{self.hostname}:{self.port}{self.path}"


def parse_url(line: str) -> GeminiUrl:
    """
    Parse une ligne de requête Gemini.
    Schéma par défaut : gemini://  Port : 1965  Chemin : /
    """
    if "://" not in line:
        line = f"{SCHEME}://{line}"

    try:
        parts = urlsplit(line)
        port = parts.port
    except ValueError as e:
        raise InvalidRequest(f"Invalid request URL {line}") from e

    if parts.scheme != SCHEME:
        raise InvalidRequest("Invalid request (URL protocol should be gemini://)")
    if not parts.hostname:
        raise InvalidRequest("Invalid request (URL must have a host)")
    if port == 0:
        raise InvalidRequest(f"Invalid request (bad port in {line})")

    return GeminiUrl(
        scheme=parts.scheme,
        hostname=_host(parts.netloc),
        port=port or PORT,
        path=parts.path or "/",
    )
