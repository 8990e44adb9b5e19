import logging
import uuid
from datetime import datetime, timezone

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from OpenSSL import SSL, crypto

from .errors import TlsSetupError
from .utils import sha256_hex

logger = logging.getLogger(__name__)


def is_self_signed(cert: x509.Certificate) -> bool:
    """Émetteur == sujet (DER identique) et signature vérifiée par sa propre clé."""
    if cert.issuer.public_bytes() != cert.subject.public_bytes():
        return False
    try:
        cert.verify_directly_issued_by(cert)
    except (InvalidSignature, ValueError, TypeError):
        return False
    return True


def is_current(cert: x509.Certificate, now: datetime = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return cert.not_valid_before_utc <= now <= cert.not_valid_after_utc


def accept_peer_certificate(preverify_ok, cert: x509.Certificate,
                            now: datetime = None) -> bool:
    """
    Politique d'acceptation des certificats clients.

    Une chaîne validée par OpenSSL est toujours acceptée. Sinon, on accepte
    uniquement un certificat auto-signé, dont la signature est valide et
    qui est dans sa période de validité.
    """
    if preverify_ok:
        return True
    if cert is None:
        return False
    return is_self_signed(cert) and is_current(cert, now)


def _verify_cb(conn, cert, errnum, depth, ok):
    accepted = accept_peer_certificate(ok, cert.to_cryptography() if cert else None)
    if not accepted:
        logger.debug("Rejected client certificate (depth %s, error %s)", depth, errnum)
    return accepted


def ssl_context(key_path: str, cert_path: str) -> SSL.Context:
    try:
        ctx = SSL.Context(SSL.TLS_SERVER_METHOD)
        ctx.set_options(SSL.OP_NO_COMPRESSION)
        ctx.set_min_proto_version(SSL.TLS1_2_VERSION)
        ctx.use_certificate_chain_file(cert_path)
        ctx.use_privatekey_file(key_path)
        ctx.check_privatekey()
    except (SSL.Error, OSError) as e:
        raise TlsSetupError(f"TLS error ({cert_path}, {key_path}): {e}") from e

    # Certificat client obligatoire
    ctx.set_verify(SSL.VERIFY_PEER | SSL.VERIFY_FAIL_IF_NO_PEER_CERT, _verify_cb)

    # Contexte de session propre à chaque accepteur
    ctx.set_session_id(uuid.uuid4().hex.encode("ascii"))
    return ctx


def peer_fingerprint(ssl_conn: SSL.Connection):
    peer_cert = ssl_conn.get_peer_certificate()
    if peer_cert is None:
        return None
    der = crypto.dump_certificate(crypto.FILETYPE_ASN1, peer_cert)
    return sha256_hex(der)
