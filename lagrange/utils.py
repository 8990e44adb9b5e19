import os
import hashlib
from OpenSSL import SSL

from . import config
from .errors import PathTraversal, RequestReadError


def recv_line(ssl_conn: SSL.Connection) -> str:
    """
    Lit la ligne de requête en une seule lecture.
    Pas de réassemblage : une requête plus longue que le tampon est refusée.
    """
    try:
        data = ssl_conn.recv(config.READ_BYTES)
    except SSL.ZeroReturnError:
        data = b""
    if not data:
        raise RequestReadError("Invalid request (empty input stream)")
    if len(data) >= config.READ_BYTES and b"\n" not in data:
        raise RequestReadError(f"Invalid request (longer than {config.READ_BYTES} bytes)")
    try:
        line = data.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise RequestReadError("Invalid request (failed to convert input to UTF8)") from e
    if not line:
        raise RequestReadError("Invalid request (blank line)")
    return line


def resolve_path(root: str, path: str) -> str:
    """
    Chemin absolu final du fichier à servir.
    Le résultat commence toujours par la racine (pas d'évasion possible) ;
    un dossier reçoit index.gmi.
    """
    root = os.path.normpath(root)
    final = os.path.normpath(os.path.join(root, path.lstrip("/")))
    if os.path.commonpath([root, final]) != root:
        raise PathTraversal(f"Invalid path {path!r} -> {final!r}")
    if os.path.isdir(final):
        final = os.path.join(final, config.INDEX_FILE)
    return final


def sha256_hex(b: bytes) -> str:
    return hashlib.sha256(b).hexdigest()
