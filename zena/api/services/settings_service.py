"""
User preferences - partial updates merged under a row lock.

Two concurrent PATCHes for the same user serialize on SELECT ... FOR UPDATE,
so the second merge sees the first one's result instead of overwriting it.
"""
import copy
import uuid
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from zena.api.core.errors import PersistenceError, new_correlation_id
from zena.api.core.logging import get_logger
from zena.api.models.user_settings import UserSettings

logger = get_logger("preferences")


def deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge patch into a copy of base.

    Nested dicts merge recursively, any other value replaces, None deletes the key.
    """
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        if value is None:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_preferences(db: Session, user_id: uuid.UUID) -> UserSettings:
    row = db.query(UserSettings).filter(UserSettings.user_id == user_id).first()
    if row is None:
        return UserSettings(user_id=user_id, preferences={}, version=0)
    return row


def update_preferences(
    db: Session,
    user_id: uuid.UUID,
    patch: Dict[str, Any],
    retry_on_conflict: bool = True
) -> UserSettings:
    """
    Merge a partial preferences document for a user.

    Raises:
        PersistenceError(500): The write failed; carries a correlation id
    """
    try:
        row = (
            db.query(UserSettings)
            .filter(UserSettings.user_id == user_id)
            .with_for_update()
            .first()
        )
        if row is None:
            row = UserSettings(user_id=user_id, preferences={}, version=0)
            db.add(row)

        row.preferences = deep_merge(row.preferences or {}, patch)
        row.version = (row.version or 0) + 1
        db.commit()
    except IntegrityError:
        # Lost the race to create the row; retry once against the row that now exists
        db.rollback()
        if not retry_on_conflict:
            raise
        logger.info("Preferences row for user %s created concurrently, retrying merge", user_id)
        return update_preferences(db, user_id, patch, retry_on_conflict=False)
    except SQLAlchemyError:
        db.rollback()
        correlation_id = new_correlation_id()
        logger.exception(
            "Failed to update preferences for user %s (correlation_id=%s)", user_id, correlation_id
        )
        raise PersistenceError("Failed to update preferences", correlation_id)

    db.refresh(row)
    return row
