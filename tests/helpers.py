import datetime

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from OpenSSL import SSL

from lagrange.server import set_io_timeout


def make_key():
    return ec.generate_private_key(ec.SECP256R1())


def make_cert(key, subject="client", issuer=None, signing_key=None,
              not_before=None, not_after=None):
    """Certificat de test ; auto-signé par défaut."""
    now = datetime.datetime.now(datetime.timezone.utc)
    subject_name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, subject)])
    issuer_name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, issuer or subject)])
    return (
        x509.CertificateBuilder()
        .subject_name(subject_name)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - datetime.timedelta(days=1))
        .not_valid_after(not_after or now + datetime.timedelta(days=30))
        .sign(signing_key or key, hashes.SHA256())
    )


def write_pem(tmp_path, name, key, cert):
    key_file = tmp_path / f"{name}.key"
    cert_file = tmp_path / f"{name}.pem"
    key_file.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ))
    cert_file.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    return str(key_file), str(cert_file)


def client_context(key=None, cert=None) -> SSL.Context:
    ctx = SSL.Context(SSL.TLS_CLIENT_METHOD)
    ctx.set_verify(SSL.VERIFY_NONE, lambda *args: True)
    if cert is not None:
        ctx.use_certificate(cert)
        ctx.use_privatekey(key)
    return ctx


def exchange(sock, client_ctx, request: bytes):
    """
    Envoie une requête et lit la réponse jusqu'à la fermeture.
    Renvoie None si le serveur a rejeté la connexion TLS.
    """
    set_io_timeout(sock, 5)
    conn = SSL.Connection(client_ctx, sock)
    conn.set_connect_state()
    chunks = []
    try:
        conn.do_handshake()
        conn.sendall(request)
        while True:
            try:
                data = conn.recv(4096)
            except (SSL.ZeroReturnError, SSL.SysCallError):
                break
            if not data:
                break
            chunks.append(data)
    except SSL.Error:
        return None
    finally:
        conn.close()
    return b"".join(chunks)
