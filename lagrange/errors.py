class GeminiError(Exception):
    """Base de toutes les erreurs du serveur."""


# ---------- Démarrage (fatales) ----------

class ConfigError(GeminiError):
    pass


class TlsSetupError(GeminiError):
    pass


# ---------- Par connexion ----------

class HandshakeError(GeminiError):
    pass


class InvalidRequest(GeminiError):
    """Ligne de requête illisible, trop longue ou URL refusée."""


class RequestReadError(InvalidRequest):
    """Lecture de la requête impossible : on coupe sans répondre."""


class FileReadError(GeminiError):
    pass


class ResolutionError(GeminiError):
    """Échec de résolution : répondu par un statut 51, jamais fatal."""


class PathTraversal(ResolutionError):
    pass


class NotFound(ResolutionError):
    pass


class DisallowedExtension(ResolutionError):
    pass
