"""
Device-local preferences.

Notification and display preferences are kept in the local key-value store
in both modes. Missing or malformed values read as the defaults.
"""

from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

from financeapp.log import get_logger
from financeapp.models.user import NotificationPreferences, UserPreferences
from financeapp.services.storage.local import (
    NOTIFICATION_PREFERENCES_KEY,
    USER_PREFERENCES_KEY,
    LocalKeyValueStore,
)


logger = get_logger(__name__)

PrefsT = TypeVar("PrefsT", bound=BaseModel)


def _load(store: LocalKeyValueStore, key: str, model: Type[PrefsT]) -> PrefsT:
    raw = store.get_json(key)
    if not isinstance(raw, dict):
        return model()
    try:
        return model.model_validate(raw)
    except ValidationError:
        logger.warning("preferences_malformed", key=key)
        return model()


def load_notification_preferences(store: LocalKeyValueStore) -> NotificationPreferences:
    return _load(store, NOTIFICATION_PREFERENCES_KEY, NotificationPreferences)


def save_notification_preferences(
    store: LocalKeyValueStore,
    preferences: NotificationPreferences,
) -> None:
    store.set_json(
        NOTIFICATION_PREFERENCES_KEY,
        preferences.model_dump(mode="json", by_alias=True),
    )


def load_user_preferences(store: LocalKeyValueStore) -> UserPreferences:
    return _load(store, USER_PREFERENCES_KEY, UserPreferences)


def save_user_preferences(store: LocalKeyValueStore, preferences: UserPreferences) -> None:
    store.set_json(USER_PREFERENCES_KEY, preferences.model_dump(mode="json", by_alias=True))
