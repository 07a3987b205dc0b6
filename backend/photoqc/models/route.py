"""
Modèles SQLAlchemy pour les routes et leurs sous-sections.
Alimentés par l'import de la checklist, lus par le cœur métier.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from photoqc.database import Base


class Route(Base):
    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_id = Column(String(100), unique=True, nullable=False)  # Ex: "R1"
    route_name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Subsection(Base):
    """Tronçon d'une route : unité de contrôle d'accès."""
    __tablename__ = "subsections"
    __table_args__ = (
        UniqueConstraint("route_id", "subsection_id", name="uq_subsections_route_subsection"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_id = Column(String(100), ForeignKey("routes.route_id", ondelete="CASCADE"), nullable=False)
    subsection_id = Column(String(100), nullable=False)
    subsection_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
