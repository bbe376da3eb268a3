"""
Saved dream and motif models
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (JSON, Column, DateTime, ForeignKey, Integer, String,
                        Text, Uuid)
from sqlalchemy.orm import relationship

from dreammapper.core.database import Base


class Dream(Base):
    """A completed dream analysis"""
    __tablename__ = "dreams"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    text = Column(Text, nullable=False)

    # Analysis fields from the inference step
    summary = Column(Text, nullable=False, default="")
    personal_interpretation = Column(Text, nullable=False, default="")
    what_to_do_next = Column(JSON, nullable=False, default=list)
    sentiment = Column(String(64), nullable=True)  # unrecognized values are kept verbatim

    moon_phase = Column(String(64), nullable=False, default="Unknown Phase")

    # One dream owns many motifs
    motifs = relationship(
        "DreamMotif",
        back_populates="dream",
        cascade="all, delete-orphan",
        order_by="DreamMotif.position",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Dream(id={self.id}, title={self.title!r}, motifs={len(self.motifs)})>"


class DreamMotif(Base):
    """Symbol/meaning pair extracted from a dream"""
    __tablename__ = "dream_motifs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    dream_id = Column(Uuid(as_uuid=True), ForeignKey("dreams.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    symbol = Column(String(255), nullable=False)
    meaning = Column(Text, nullable=False)

    dream = relationship("Dream", back_populates="motifs")

    def __repr__(self):
        return f"<DreamMotif(dream_id={self.dream_id}, symbol={self.symbol!r})>"
