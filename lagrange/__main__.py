import logging
import sys

from .config import load_config
from .errors import ConfigError, TlsSetupError
from .server import bind, serve_forever
from .tls import ssl_context

logger = logging.getLogger("lagrange")


def run() -> int:
    try:
        cfg = load_config()
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error("%s", e)
        return 1

    level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        ctx = ssl_context(cfg.key_path, cfg.cert_path)
    except TlsSetupError as e:
        logger.error("%s", e)
        return 1

    try:
        listener = bind(cfg)
    except OSError as e:
        logger.error("TCP bind error on %s: %s", cfg.bind, e)
        return 1

    logger.info("Gemini server listening to %s (root %s)", cfg.bind, cfg.root)
    try:
        serve_forever(listener, ctx, cfg)
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        listener.close()
    return 0


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
