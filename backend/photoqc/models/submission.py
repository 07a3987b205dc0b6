"""
Modèles SQLAlchemy pour les soumissions photo et leur fil de commentaires.

Chaîne de resoumission :
- resubmission_of_id pointe vers la soumission remplacée (qc_required ou nc)
- contrainte UNIQUE : une soumission ne peut être remplacée qu'une seule fois,
  ce qui ferme la course entre deux resoumissions concurrentes
- la « tête » de chaîne est la soumission que personne ne référence (dérivé, jamais stocké)
"""

from sqlalchemy import BigInteger, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import relationship

from photoqc.database import Base


class PhotoSubmission(Base):
    """Une tentative de capture photo pour un slot de la checklist."""
    __tablename__ = "photo_submissions"
    __table_args__ = (
        Index("idx_photo_submissions_route_sub_status", "route_id", "subsection_id", "status"),
        Index("idx_photo_submissions_fingerprint", "file_original_size", "file_last_modified"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Slot
    route_id = Column(String(100), nullable=False)
    subsection_id = Column(String(100), nullable=False)
    checkpoint_id = Column(Integer, ForeignKey("checkpoints.id"), nullable=False)
    execution_stage = Column(String(10), nullable=False)  # Before, Ongoing, After
    photo_index = Column(Integer, nullable=False, default=1)

    # Contenu
    content_key = Column(String(512), nullable=False)
    content_url = Column(String(1024), nullable=True)
    filename = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    format = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    location_accuracy = Column(Float, nullable=True)

    # Empreinte du fichier d'origine (détection de doublons)
    file_original_size = Column(BigInteger, nullable=False)
    file_last_modified = Column(BigInteger, nullable=False)  # Epoch en millisecondes

    # Cycle de vie
    status = Column(String(20), nullable=False, default="pending")  # pending, approved, qc_required, nc
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    resubmission_of_id = Column(Integer, ForeignKey("photo_submissions.id"), unique=True, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    submitter = relationship("User", foreign_keys=[user_id], lazy="joined")
    reviewer = relationship("User", foreign_keys=[reviewer_id], lazy="joined")
    checkpoint = relationship("Checkpoint", lazy="joined")
    comments = relationship(
        "SubmissionComment",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionComment.id",
    )


class SubmissionComment(Base):
    """Commentaire append-only rattaché à une soumission (motif de rejet ou discussion)."""
    __tablename__ = "photo_submission_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    photo_submission_id = Column(
        Integer, ForeignKey("photo_submissions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    author_email = Column(String(255), nullable=False)
    author_name = Column(String(255), nullable=True)
    comment_text = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    submission = relationship("PhotoSubmission", back_populates="comments")
