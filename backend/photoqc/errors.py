"""
Erreurs métier du cœur photo QC.

Les services lèvent ces exceptions (toutes dérivées de ValueError) ; l'application les
traduit en réponse structurée {"detail", "kind"} via le handler déclaré dans main.py.
"""


class PhotoQcError(ValueError):
    """Erreur métier générique, porteuse d'un type (kind) et d'un message lisible."""

    kind = "validation"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(PhotoQcError):
    """Champ manquant ou malformé (commentaire vide, index photo invalide...)."""

    kind = "validation"
    status_code = 400


class AccessDenied(PhotoQcError):
    """L'appelant n'a pas accès à la sous-section ou n'a pas le rôle requis."""

    kind = "authorization"
    status_code = 403

    def __init__(self, reason: str):
        # Le motif réel est journalisé, l'appelant reçoit un message neutre
        super().__init__("Accès refusé.")
        self.reason = reason


class Conflict(PhotoQcError):
    """Violation d'une règle métier : doublon, soumission remplacée ou approuvée..."""

    kind = "conflict"
    status_code = 409


class NotFound(PhotoQcError):
    """Soumission, checkpoint ou sous-section introuvable."""

    kind = "not_found"
    status_code = 404


class StorageError(PhotoQcError):
    """Échec du stockage des photos (S3 ou disque local)."""

    kind = "dependency"
    status_code = 502

    def __init__(self, detail: str):
        super().__init__("Le stockage des photos est momentanément indisponible. Veuillez réessayer.")
        self.detail = detail
