"""
Modèle SQLAlchemy pour les objets de stockage dont la suppression a échoué.
Relancés périodiquement par le scheduler (voir cleanup_service).
"""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from photoqc.database import Base


class PendingContentDeletion(Base):
    __tablename__ = "pending_content_deletions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content_key = Column(String(512), unique=True, nullable=False)
    attempts = Column(Integer, default=1)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
