import socket
import struct
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from OpenSSL import SSL

from .config import Config
from .errors import FileReadError, HandshakeError, InvalidRequest, RequestReadError
from .response import BAD_REQUEST, GeminiResponse, build_response
from .tls import peer_fingerprint
from .url import parse_url
from .utils import recv_line

logger = logging.getLogger(__name__)


@dataclass
class Session:
    peer: str
    conn: SSL.Connection
    fingerprint: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started: float = field(default_factory=time.monotonic)

    def log(self, message: str, level=logging.INFO):
        logger.log(level, "%s %s %s", self.id, self.peer, message)

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)


def set_io_timeout(sock: socket.socket, seconds: float):
    """
    Délai noyau (SO_RCVTIMEO / SO_SNDTIMEO) : la socket reste bloquante,
    ce qu'exige pyOpenSSL, mais un pair muet libère son worker.
    """
    if not seconds:
        return
    sec = int(seconds)
    usec = int((seconds - sec) * 1_000_000)
    tv = struct.pack("ll", sec, usec)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVTIMEO, tv)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDTIMEO, tv)


def respond(session: Session, root: str):
    # 1) Requête (1 ligne Gemini)
    request = recv_line(session.conn)
    url = parse_url(request)
    digest = f" TLS digest {session.fingerprint}" if session.fingerprint else ""
    session.log(f"New request from {session.peer}{digest} {request}")

    # 2) Fichier statique
    response = build_response(root, url.path, log=session.log)
    raw = response.to_bytes()
    session.log(f"Reply Code {response.status} Response length {len(raw)} bytes")
    session.conn.sendall(raw)


def handle(ctx: SSL.Context, client: socket.socket, addr, root: str, timeout: float = 0):
    """Cycle de vie complet d'une connexion ; aucune erreur ne remonte."""
    try:
        if not addr or not addr[0]:
            logger.error("Failed to get peer IP address from TCP stream")
            return
        peer = addr[0]

        client.setblocking(True)
        set_io_timeout(client, timeout)

        # Handshake (la politique de tls.py s'applique ici)
        ssl_conn = SSL.Connection(ctx, client)
        ssl_conn.set_accept_state()
        try:
            ssl_conn.do_handshake()
        except SSL.Error as e:
            raise HandshakeError(f"{peer} Failed to establish SSL connection: {e}") from e

        session = Session(peer=peer, conn=ssl_conn, fingerprint=peer_fingerprint(ssl_conn))
        try:
            respond(session, root)
        except RequestReadError as e:
            # lecture ratée : pas de réponse structurée
            session.log(str(e), logging.WARNING)
            return
        except InvalidRequest as e:
            session.log(str(e), logging.WARNING)
            ssl_conn.sendall(GeminiResponse(BAD_REQUEST).to_bytes())
        except FileReadError as e:
            session.log(f"{e}: {e.__cause__}", logging.ERROR)
            return
        session.log(f"Finished ({session.elapsed_ms()}ms)")

        try:
            ssl_conn.shutdown()
        except SSL.Error:
            pass

    except HandshakeError as e:
        logger.warning("%s", e)
    except (SSL.Error, OSError) as e:
        logger.error("Connection handling error with %s: %r", addr, e)
    except Exception:
        logger.exception("Unexpected error while handling %s", addr)
    finally:
        try:
            client.close()
        except OSError:
            pass


def bind(cfg: Config) -> socket.socket:
    family = socket.AF_INET6 if ":" in cfg.host else socket.AF_INET
    base = socket.socket(family, socket.SOCK_STREAM)
    try:
        if family == socket.AF_INET6:
            # "::" écoute aussi en v4 (dual-stack)
            base.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        base.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        base.bind((cfg.host, cfg.port))
        base.listen(16)
    except OSError:
        base.close()
        raise
    return base


def serve_forever(listener: socket.socket, ctx: SSL.Context, cfg: Config,
                  stop: threading.Event = None, poll_interval: float = 0.5):
    """
    Boucle d'acceptation. Chaque connexion part dans un pool de `workers`
    threads ; quand tous sont occupés, l'accept attend qu'un slot se libère.
    """
    stop = stop or threading.Event()
    slots = threading.BoundedSemaphore(cfg.workers)
    listener.settimeout(poll_interval)

    def run(client, addr):
        try:
            handle(ctx, client, addr, cfg.root, cfg.timeout)
        finally:
            slots.release()

    with ThreadPoolExecutor(max_workers=cfg.workers, thread_name_prefix="gemini") as pool:
        while not stop.is_set():
            if not slots.acquire(timeout=poll_interval):
                continue
            try:
                client, addr = listener.accept()
            except socket.timeout:
                slots.release()
                continue
            except OSError as e:
                slots.release()
                if stop.is_set():
                    break
                logger.error("Failed to accept connection: %r", e)
                stop.wait(poll_interval)
                continue
            pool.submit(run, client, addr)
