"""
Modèles SQLAlchemy pour la checklist : entités et points de contrôle photo.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from photoqc.database import Base


class Entity(Base):
    """Élément d'ouvrage (ex. « Manhole ») regroupant plusieurs checkpoints."""
    __tablename__ = "entities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)
    code = Column(String(3), nullable=True)  # Code court utilisé dans les noms de fichiers
    display_order = Column(Integer, default=0)


class Checkpoint(Base):
    """Point de contrôle photo d'une entité."""
    __tablename__ = "checkpoints"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_id = Column(Integer, ForeignKey("entities.id", ondelete="CASCADE"), nullable=True)
    checkpoint_name = Column(String(255), nullable=False)
    code = Column(String(3), nullable=True)
    display_order = Column(Integer, default=0)
    created_at = Column(DateTime, server_default=func.now())

    entity = relationship("Entity", lazy="joined")
