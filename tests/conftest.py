"""
Fixtures pytest : clés et certificats jetables, capsule de test.
"""

import socket
import threading

import pytest

from lagrange.config import Config
from lagrange.tls import ssl_context
from tests.helpers import make_cert, make_key, write_pem


@pytest.fixture
def server_files(tmp_path):
    """(clé, certificat) du serveur sur disque."""
    key = make_key()
    return write_pem(tmp_path, "server", key, make_cert(key, subject="localhost"))


@pytest.fixture
def server_ctx(server_files):
    key_path, cert_path = server_files
    return ssl_context(key_path, cert_path)


@pytest.fixture
def capsule(tmp_path):
    root = tmp_path / "capsule"
    (root / "docs").mkdir(parents=True)
    (root / "index.gmi").write_bytes("# Accueil\n\n=> /docs Docs\n".encode("utf-8"))
    (root / "docs" / "index.gmi").write_bytes(b"# Docs\n")
    (root / "foo.gmi").write_bytes(b"# Foo\n")
    (root / "photo.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (root / "photo.bmp").write_bytes(b"BM")
    (root / "README").write_bytes(b"no extension")
    (root / "empty").mkdir()
    return str(root)


@pytest.fixture
def config(server_files, capsule) -> Config:
    key_path, cert_path = server_files
    return Config(
        host="127.0.0.1",
        port=0,
        key_path=key_path,
        cert_path=cert_path,
        root=capsule,
        workers=2,
        timeout=5,
    )


@pytest.fixture
def client_identity():
    key = make_key()
    return key, make_cert(key)


@pytest.fixture
def socket_pair():
    """(côté serveur, côté client)."""
    server_sock, client_sock = socket.socketpair()
    yield server_sock, client_sock
    server_sock.close()
    client_sock.close()


@pytest.fixture
def run_in_thread():
    threads = []

    def start(target, *args):
        t = threading.Thread(target=target, args=args, daemon=True)
        t.start()
        threads.append(t)
        return t

    yield start
    for t in threads:
        t.join(timeout=5)
