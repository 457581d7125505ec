"""In-memory registry of open exam composition forms.

Each open form gets its own ExamComposer keyed by a random draft id.
Nothing is persisted: closing a form, submitting it successfully or
being evicted as the oldest form drops the draft for good.
"""

import logging
import uuid
from collections import OrderedDict
from typing import Optional

from exam_composer.config import get_settings
from exam_composer.models.session import SessionContext
from exam_composer.services.composer import ExamComposer

logger = logging.getLogger(__name__)


class DraftStore:
    """Open form instances, oldest first."""

    def __init__(self, max_open_drafts: Optional[int] = None):
        self.max_open_drafts = max_open_drafts or get_settings().max_open_drafts
        self._drafts: "OrderedDict[str, ExamComposer]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._drafts)

    def __contains__(self, draft_id: str) -> bool:
        return draft_id in self._drafts

    def open(self, session: Optional[SessionContext] = None) -> ExamComposer:
        """Create a new form instance with an empty draft."""
        draft_id = str(uuid.uuid4())
        composer = ExamComposer(session=session, draft_id=draft_id)
        self._drafts[draft_id] = composer

        while len(self._drafts) > self.max_open_drafts:
            # Forms with a request in flight are never evicted
            evicted_id = next(
                (k for k, c in self._drafts.items() if k != draft_id and not c.is_submitting),
                None,
            )
            if evicted_id is None:
                break
            self._drafts.pop(evicted_id).discard()
            logger.info(f"Evicted draft {evicted_id} (limit {self.max_open_drafts})")

        return composer

    def get(self, draft_id: str) -> Optional[ExamComposer]:
        return self._drafts.get(draft_id)

    def close(self, draft_id: str) -> bool:
        """Discard a form instance. Returns False for unknown ids."""
        composer = self._drafts.pop(draft_id, None)
        if composer is None:
            return False
        composer.discard()
        return True


_store: Optional[DraftStore] = None


def get_draft_store() -> DraftStore:
    """Get the process-wide draft store, creating it on first use."""
    global _store
    if _store is None:
        _store = DraftStore()
    return _store
