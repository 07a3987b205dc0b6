"""
Modèle SQLAlchemy pour les utilisateurs.
Le rôle est stocké en texte libre et normalisé à la lecture (voir identity_service).
"""

from sqlalchemy import Column, DateTime, Integer, String, func

from photoqc.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=True)
    role = Column(String(50), nullable=True)  # Engineer, Reviewer, Admin
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
