import logging
import threading
from typing import Collection, Dict, List, Optional, Sequence, Set, Tuple

from ..submission.naming import NamingPolicy, split_name
from ..submission.pipeline import SubmissionResult
from .completion import completed_indices, index_for_uploaded
from .tasks import (
    SubmissionFailed,
    SubmissionStarted,
    SubmissionSucceeded,
    UploadTask,
    UploadTaskStore,
)

logger = logging.getLogger("progress.session")

FALLBACK_LABEL = "handwriting"


class CaptureSession:
    """
    Cursor over the items being collected, with optimistic advance.

    Submitting moves to the next item right away. A failed upload moves the
    cursor back to the submitted item, but only if the user has not navigated
    since; otherwise the late result just updates the task list.
    """

    def __init__(
        self,
        items: Sequence[str],
        store: Optional[UploadTaskStore] = None,
        policy: NamingPolicy = "codepoint",
    ):
        self.items: List[str] = list(items)
        self.store = store or UploadTaskStore()
        self.policy = policy
        self.cursor = 0
        self.completed: Set[int] = set()
        # task id -> (submitted index, cursor right after the optimistic advance)
        self._inflight: Dict[str, Tuple[int, int]] = {}
        self._lock = threading.Lock()

    @property
    def current_label(self) -> str:
        return self.items[self.cursor] if self.items else FALLBACK_LABEL

    def jump_to(self, index: int) -> int:
        with self._lock:
            if self.items:
                self.cursor = max(0, min(index, len(self.items) - 1))
            return self.cursor

    def _advance(self) -> None:
        if self.items:
            self.cursor = self.cursor + 1 if self.cursor < len(self.items) - 1 else 0

    def begin_submission(self) -> UploadTask:
        with self._lock:
            submitted = self.cursor
            event = SubmissionStarted(source_index=submitted, label=self.current_label)
            self._advance()
            self._inflight[event.task_id] = (submitted, self.cursor)
        return self.store.apply(event)

    def finish(self, task_id: str, result: SubmissionResult) -> Optional[UploadTask]:
        with self._lock:
            inflight = self._inflight.pop(task_id, None)
            if inflight is None:
                logger.debug("Ignoring result for unknown task %s", task_id)
                return None
            submitted, advanced_to = inflight

            if result.success:
                # Completion is recorded before the task settles so pollers see both
                if result.remote_path:
                    _, stem, _ = split_name(result.remote_path)
                    idx = index_for_uploaded(self.items, stem, self.policy)
                    if idx is not None:
                        self.completed.add(idx)
                return self.store.apply(SubmissionSucceeded(task_id=task_id, remote_path=result.remote_path))

            if self.cursor == advanced_to:
                self.cursor = submitted
            else:
                logger.info("Cursor moved since task %s was submitted; not rolling back", task_id)
            return self.store.apply(SubmissionFailed(task_id=task_id, detail=result.message))

    def refresh_completion(self, names: Collection[str]) -> Set[int]:
        with self._lock:
            self.completed = completed_indices(self.items, names, self.policy)
            return set(self.completed)
