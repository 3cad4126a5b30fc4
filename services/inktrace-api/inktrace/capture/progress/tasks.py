import threading
import time
import uuid
from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field

UploadState = Literal["pending", "succeeded", "failed"]


class UploadTask(BaseModel):
    id: str
    source_index: int
    label: str
    state: UploadState = "pending"
    detail: Optional[str] = None
    remote_path: Optional[str] = None
    created_at: float = Field(default_factory=time.time)


# Events are the only way task state changes
class SubmissionStarted(BaseModel):
    source_index: int
    label: str
    task_id: str = Field(default_factory=lambda: str(uuid.uuid4()))


class SubmissionSucceeded(BaseModel):
    task_id: str
    remote_path: Optional[str] = None


class SubmissionFailed(BaseModel):
    task_id: str
    detail: str


SubmissionEvent = Union[SubmissionStarted, SubmissionSucceeded, SubmissionFailed]


class UploadTaskStore:
    """
    Single source of truth for upload status, keyed by task id.
    Thread-safe; terminal states are final.
    """

    def __init__(self):
        self._tasks: Dict[str, UploadTask] = {}
        self._lock = threading.Lock()

    def apply(self, event: SubmissionEvent) -> Optional[UploadTask]:
        with self._lock:
            if isinstance(event, SubmissionStarted):
                task = UploadTask(id=event.task_id, source_index=event.source_index, label=event.label)
                self._tasks[task.id] = task
                return task.model_copy()

            task = self._tasks.get(event.task_id)
            if task is None or task.state != "pending":
                # Unknown or already settled: late duplicate callbacks are dropped
                return None
            if isinstance(event, SubmissionSucceeded):
                task.state = "succeeded"
                task.remote_path = event.remote_path
                task.detail = None
            else:
                task.state = "failed"
                task.detail = event.detail
            return task.model_copy()

    def get(self, task_id: str) -> Optional[UploadTask]:
        with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy() if task else None

    def list(self) -> List[UploadTask]:
        with self._lock:
            tasks = [t.model_copy() for t in self._tasks.values()]
        return sorted(tasks, key=lambda t: t.created_at, reverse=True)

    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._tasks.values() if t.state == "pending")

    def clear_finished(self) -> int:
        with self._lock:
            done = [k for k, t in self._tasks.items() if t.state != "pending"]
            for k in done:
                del self._tasks[k]
            return len(done)
