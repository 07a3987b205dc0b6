"""
Construction des noms de fichiers et clés de stockage lisibles.

Format : {route}-{sous-section}-{ENT}-{CHK}-{B|O|A}-{index}-{AAAAMMJJ}-{HHMMSS}.{ext}
L'horodatage est exprimé dans le fuseau du chantier (FILENAME_TIMEZONE).
"""

import re
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from photoqc.config import settings

_STAGE_LETTERS = {"Before": "B", "Ongoing": "O", "After": "A"}


def to_3char_code(name: Optional[str]) -> str:
    """Code de 3 caractères alphanumériques en majuscules, complété par des X."""
    cleaned = re.sub(r"[^a-zA-Z0-9]", "", name or "").upper()[:3]
    return (cleaned + "XXX")[:3]


def file_extension(original_filename: Optional[str]) -> str:
    name = original_filename or ""
    ext = re.sub(r"[^a-z0-9]", "", name.rsplit(".", 1)[1].lower()) if "." in name else ""
    if not ext or ext == "jpeg":
        return "jpg"
    return ext


def build_photo_filename(
    route_id: str,
    subsection_id: str,
    entity_code: str,
    checkpoint_code: str,
    execution_stage: str,
    photo_index: int,
    extension: str,
    captured_at: Optional[datetime] = None,
) -> str:
    moment = (captured_at or datetime.now(timezone.utc)).astimezone(ZoneInfo(settings.FILENAME_TIMEZONE))
    stage_letter = _STAGE_LETTERS.get(execution_stage, "A")
    return (
        f"{route_id}-{subsection_id}-{entity_code}-{checkpoint_code}-{stage_letter}-{photo_index}"
        f"-{moment:%Y%m%d}-{moment:%H%M%S}.{extension}"
    )


def content_key(filename: str, token: Optional[str] = None) -> str:
    """
    Clé de stockage du fichier. Le jeton est inséré avant l'extension : deux soumissions
    d'un même slot dans la même seconde ne partagent jamais la même clé.
    """
    if token:
        stem, dot, ext = filename.rpartition(".")
        filename = f"{stem}-{token}{dot}{ext}" if dot else f"{filename}-{token}"
    return f"{settings.AWS_S3_PHOTOS_PREFIX}/{filename}"
