"""
Modèle SQLAlchemy pour la liste blanche d'emails par sous-section.

Aucune ligne pour une sous-section = accès ouvert à tous les utilisateurs authentifiés.
"""

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, func

from photoqc.database import Base


class SubsectionAllowedEmail(Base):
    __tablename__ = "subsection_allowed_emails"
    __table_args__ = (
        UniqueConstraint("route_id", "subsection_id", "email", name="uq_allowed_email"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_id = Column(String(100), nullable=False)
    subsection_id = Column(String(100), nullable=False)
    email = Column(String(254), nullable=False)  # Stocké en minuscules
    created_at = Column(DateTime, server_default=func.now())
