"""Server-side storage of the single live refresh token per user."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from blogauth.core.exceptions import DatabaseError
from blogauth.models.security import RefreshToken

logger = logging.getLogger(__name__)


class RefreshTokenStore:
    """Upsert, look up, swap and delete refresh-token records."""

    @staticmethod
    def _failed(db: Session, exc: SQLAlchemyError) -> DatabaseError:
        db.rollback()
        logger.error("Refresh token store failure: %s", exc)
        return DatabaseError()

    def put(self, db: Session, owner_id: int, token: str) -> RefreshToken:
        """Create the owner's record or overwrite its token. Last writer wins."""
        try:
            record = db.query(RefreshToken).filter(RefreshToken.user_id == owner_id).first()
            if record is None:
                record = RefreshToken(user_id=owner_id, token=token)
                db.add(record)
            else:
                record.token = token
            db.commit()
        except IntegrityError:
            # Another request inserted the owner's row between our read and write.
            db.rollback()
            try:
                db.query(RefreshToken).filter(RefreshToken.user_id == owner_id).update(
                    {RefreshToken.token: token}, synchronize_session=False
                )
                db.commit()
                record = db.query(RefreshToken).filter(RefreshToken.user_id == owner_id).one()
            except SQLAlchemyError as exc:
                raise self._failed(db, exc) from exc
        except SQLAlchemyError as exc:
            raise self._failed(db, exc) from exc
        return record

    def find_by_owner_and_token(self, db: Session, owner_id: int, token: str) -> Optional[RefreshToken]:
        try:
            return (
                db.query(RefreshToken)
                .filter(RefreshToken.user_id == owner_id, RefreshToken.token == token)
                .first()
            )
        except SQLAlchemyError as exc:
            raise self._failed(db, exc) from exc

    def replace(self, db: Session, owner_id: int, expected_token: str, new_token: str) -> bool:
        """
        Swap the owner's token only if it still equals expected_token.

        Returns:
            bool: True if this call consumed expected_token
        """
        try:
            updated = (
                db.query(RefreshToken)
                .filter(RefreshToken.user_id == owner_id, RefreshToken.token == expected_token)
                .update({RefreshToken.token: new_token}, synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as exc:
            raise self._failed(db, exc) from exc
        db.expire_all()
        return updated == 1

    def delete_by_token(self, db: Session, token: str) -> bool:
        """Delete the record holding token. Missing records are not an error."""
        try:
            deleted = (
                db.query(RefreshToken)
                .filter(RefreshToken.token == token)
                .delete(synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as exc:
            raise self._failed(db, exc) from exc
        db.expire_all()
        return deleted > 0


refresh_token_store = RefreshTokenStore()
