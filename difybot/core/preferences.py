"""Per-user model preference memory."""

import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Optional

from ..common.enums import ModelName
from ..models import UserPreference

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Process-local map of Slack user id -> preferred model.

    Bounded to `capacity` users. When full, the least recently active user
    is dropped; both `get` and `set` count as activity for a known user.
    Unknown users get `default_model`.
    """

    def __init__(self, default_model: ModelName = ModelName.CLAUDE, capacity: int = 1000):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.default_model = ModelName(default_model)
        self.capacity = capacity
        self._prefs: OrderedDict[str, UserPreference] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._prefs)

    def get(self, user_id: str) -> ModelName:
        with self._lock:
            pref = self._prefs.get(user_id)
            if pref is None:
                return self.default_model
            pref.last_active_at = datetime.utcnow()
            self._prefs.move_to_end(user_id)
            return pref.model

    def set(self, user_id: str, model: str) -> None:
        """Store `model` for `user_id`.

        Raises:
            ValueError: If `model` is not a supported model name
        """
        model = ModelName(str(model).lower())
        with self._lock:
            self._prefs[user_id] = UserPreference(model=model)
            self._prefs.move_to_end(user_id)
            while len(self._prefs) > self.capacity:
                evicted, _ = self._prefs.popitem(last=False)
                logger.info(f"Preference store full, dropped least recently active user {evicted}")
        logger.info(f"User {user_id} now prefers {model.upper()}")

    def peek(self, user_id: str) -> Optional[UserPreference]:
        """Return the stored preference without touching its activity."""
        with self._lock:
            return self._prefs.get(user_id)
