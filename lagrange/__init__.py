"""Serveur de capsule Gemini (TLS, pyOpenSSL)."""

__version__ = "0.2.0"
