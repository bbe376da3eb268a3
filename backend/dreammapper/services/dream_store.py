"""
Durable storage for completed dream analyses
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from dreammapper.core.config import get_settings
from dreammapper.core.database import get_session_local
from dreammapper.core.errors import DreamNotFound, PersistenceError
from dreammapper.core.logging_config import LoggingConfig
from dreammapper.models.analysis_types import CompletedDreamRecord, Motif
from dreammapper.models.dream import Dream, DreamMotif

logger = LoggingConfig.get_logger(__name__)

UNTITLED_DREAM = "Untitled dream"


def _to_record(dream: Dream) -> CompletedDreamRecord:
    return CompletedDreamRecord(
        id=dream.id,
        created_at=dream.created_at,
        title=dream.title,
        text=dream.text,
        summary=dream.summary,
        motifs=[Motif(symbol=m.symbol, meaning=m.meaning) for m in dream.motifs],
        personal_interpretation=dream.personal_interpretation,
        what_to_do_next=list(dream.what_to_do_next or []),
        sentiment=dream.sentiment,
        moon_phase=dream.moon_phase,
    )


class DreamStore:
    """
    SQLAlchemy-backed store for CompletedDreamRecord.

    Once a record is handed to save() the store owns it; callers get back a
    new record carrying the assigned id.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or get_session_local()

    def _session(self) -> Session:
        return self._session_factory()

    def save(self, record: CompletedDreamRecord) -> CompletedDreamRecord:
        """
        Persist a record with its motifs.

        Raises:
            PersistenceError: the database rejected the write
        """
        dream = Dream(
            created_at=record.created_at,
            title=record.title.strip() or UNTITLED_DREAM,
            text=record.text,
            summary=record.summary,
            personal_interpretation=record.personal_interpretation,
            what_to_do_next=list(record.what_to_do_next),
            sentiment=record.sentiment,
            moon_phase=record.moon_phase,
            motifs=[
                DreamMotif(position=index, symbol=motif.symbol, meaning=motif.meaning)
                for index, motif in enumerate(record.motifs)
            ],
        )
        session = self._session()
        try:
            session.add(dream)
            session.commit()
            session.refresh(dream)
            saved = _to_record(dream)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save dream: {e}", exc_info=True)
            raise PersistenceError("Dream analysis completed but could not be saved", record=record) from e
        finally:
            session.close()

        logger.info("Saved dream", extra={"dream_id": str(saved.id), "motif_count": len(saved.motifs)})
        return saved

    def list_recent(self, limit: Optional[int] = None) -> List[CompletedDreamRecord]:
        """Saved dreams, newest first"""
        limit = limit or get_settings().recent_dreams_limit
        session = self._session()
        try:
            dreams = session.scalars(
                select(Dream)
                .options(selectinload(Dream.motifs))
                .order_by(Dream.created_at.desc())
                .limit(limit)
            ).all()
            return [_to_record(d) for d in dreams]
        finally:
            session.close()

    def get(self, dream_id: UUID) -> CompletedDreamRecord:
        session = self._session()
        try:
            dream = session.get(Dream, dream_id)
            if dream is None:
                raise DreamNotFound(f"Dream {dream_id} not found")
            return _to_record(dream)
        finally:
            session.close()

    def delete(self, dream_id: UUID):
        """Delete one dream and, through the cascade, its motifs"""
        session = self._session()
        try:
            dream = session.get(Dream, dream_id)
            if dream is None:
                raise DreamNotFound(f"Dream {dream_id} not found")
            session.delete(dream)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Could not delete dream {dream_id}") from e
        finally:
            session.close()
        logger.info("Deleted dream", extra={"dream_id": str(dream_id)})

    def delete_all(self) -> int:
        """Delete every saved dream; returns how many were removed"""
        session = self._session()
        try:
            dreams = session.scalars(select(Dream)).all()
            for dream in dreams:
                session.delete(dream)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError("Could not delete saved dreams") from e
        finally:
            session.close()
        logger.info("Deleted all dreams", extra={"count": len(dreams)})
        return len(dreams)


# Global store instance
_dream_store: Optional[DreamStore] = None


def get_dream_store() -> DreamStore:
    """Get global dream store instance"""
    global _dream_store
    if _dream_store is None:
        _dream_store = DreamStore()
    return _dream_store
