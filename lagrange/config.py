import os
from dataclasses import dataclass

from .errors import ConfigError

# Réseau
PORT = 1965
DEFAULT_BIND = f"127.0.0.1:{PORT}"

# Capsule
INDEX_FILE = "index.gmi"

# I/O
READ_BYTES = 2048   # une URL Gemini fait au plus 1024 octets + CRLF
TIMEOUT_S  = 30
WORKERS    = 8

# Variables d'environnement
ENV_BIND      = "GEMINI_SERVER_HOSTNAME"
ENV_KEY       = "GEMINI_SERVER_TLS_KEY_FILENAME"
ENV_CERT      = "GEMINI_SERVER_TLS_CERT_FILENAME"
ENV_ROOT      = "GEMINI_SERVER_ROOT_DIRECTORY"
ENV_LOG_LEVEL = "GEMINI_SERVER_LOG_LEVEL"
ENV_WORKERS   = "GEMINI_SERVER_WORKERS"
ENV_TIMEOUT   = "GEMINI_SERVER_TIMEOUT"


@dataclass(frozen=True)
class Config:
    host: str
    port: int
    key_path: str
    cert_path: str
    root: str
    log_level: str = "info"
    workers: int = WORKERS
    timeout: float = TIMEOUT_S

    @property
    def bind(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def _env_value(name: str, default: str) -> str:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value


def _env_required(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise ConfigError(f"Missing environment variable {name}")
    return value


def _env_number(name: str, default, cast=int):
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except ValueError:
        return default


def parse_bind(value: str):
    """
    Découpe "host:port" ou "[v6]:port" en (host, port).
    Sans port explicite, on écoute sur 1965.
    """
    value = value.strip()
    if value.startswith("["):
        host, sep, rest = value[1:].partition("]")
        if not sep:
            raise ConfigError(f"Invalid bind address {value!r}")
        port_str = rest[1:] if rest.startswith(":") else ""
        if rest and not rest.startswith(":"):
            raise ConfigError(f"Invalid bind address {value!r}")
    elif value.count(":") == 1:
        host, _, port_str = value.partition(":")
    else:
        host, port_str = value, ""

    if not port_str:
        port = PORT
    else:
        try:
            port = int(port_str)
        except ValueError:
            raise ConfigError(f"Invalid bind port in {value!r}") from None
    if not (0 <= port <= 65535):
        raise ConfigError(f"Invalid bind port in {value!r}")
    return host, port


def load_config() -> Config:
    host, port = parse_bind(_env_value(ENV_BIND, DEFAULT_BIND))
    key_path = _env_required(ENV_KEY)
    cert_path = _env_required(ENV_CERT)

    root = os.path.abspath(_env_required(ENV_ROOT))
    if not os.path.isdir(root):
        raise ConfigError(f"Server root {root} is not a directory")

    workers = max(1, _env_number(ENV_WORKERS, WORKERS))
    timeout = max(0.0, _env_number(ENV_TIMEOUT, float(TIMEOUT_S), float))

    return Config(
        host=host,
        port=port,
        key_path=key_path,
        cert_path=cert_path,
        root=root,
        log_level=_env_value(ENV_LOG_LEVEL, "info").lower(),
        workers=workers,
        timeout=timeout,
    )
