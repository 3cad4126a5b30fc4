import logging
from typing import Optional, Sequence

from . import config
from .capture.progress.session import CaptureSession
from .capture.progress.tasks import (
    SubmissionFailed,
    SubmissionStarted,
    SubmissionSucceeded,
    UploadTask,
    UploadTaskStore,
)
from .capture.stroke_engine.svg_document import VectorDocument
from .capture.submission.github_contents import GitHubContentsClient
from .capture.submission.pipeline import GitHubUploadConfig, SubmissionPipeline, SubmissionResult

logger = logging.getLogger("processing")


def make_client(cfg: GitHubUploadConfig) -> GitHubContentsClient:
    return GitHubContentsClient(
        owner=cfg.owner.strip(),
        repo=cfg.repo.strip(),
        token=cfg.token,
        branch=cfg.branch.strip() or "main",
        api_base=config.github_api_base(),
    )


def build_pipeline() -> SubmissionPipeline:
    return SubmissionPipeline(
        output_dir=config.svg_dir(),
        naming_policy=config.naming_policy(),
        client_factory=make_client,
        serialize_same_name=config.serialize_uploads(),
    )


class SubmissionJobs:
    """Runs submissions in the background and projects results onto a task store."""

    def __init__(self, pipeline: Optional[SubmissionPipeline] = None, store: Optional[UploadTaskStore] = None):
        self._pipeline = pipeline
        self.store = store or UploadTaskStore()
        self.session: Optional[CaptureSession] = None

    @property
    def pipeline(self) -> SubmissionPipeline:
        # Built lazily so env changes before the first request are honoured
        if self._pipeline is None:
            self._pipeline = build_pipeline()
        return self._pipeline

    def _settle(self, task_id: str, result: SubmissionResult) -> None:
        if result.success:
            self.store.apply(SubmissionSucceeded(task_id=task_id, remote_path=result.remote_path))
        else:
            self.store.apply(SubmissionFailed(task_id=task_id, detail=result.message))

    def start(self, document: VectorDocument, label: str, source_index: int, cfg: GitHubUploadConfig) -> str:
        task = self.store.apply(SubmissionStarted(source_index=source_index, label=label))
        self.pipeline.submit(
            document, label, cfg,
            completion=lambda result: self._settle(task.id, result),
        )
        logger.info("Queued submission %s for %r", task.id, label)
        return task.id

    def run_sync(self, document: VectorDocument, label: str, source_index: int, cfg: GitHubUploadConfig) -> SubmissionResult:
        task = self.store.apply(SubmissionStarted(source_index=source_index, label=label))
        result = self.pipeline.run(document, label, cfg)
        self._settle(task.id, result)
        return result

    def start_session(self, items: Sequence[str]) -> CaptureSession:
        """Replaces the current capture session; its tasks land in the shared store."""
        self.session = CaptureSession(items, store=self.store, policy=self.pipeline.naming_policy)
        logger.info("Started capture session with %d items", len(self.session.items))
        return self.session

    def submit_current(self, document: VectorDocument, cfg: GitHubUploadConfig) -> UploadTask:
        """
        Submits the session's current item and advances optimistically; the
        upload result settles the task and may roll the cursor back.
        """
        session = self.session
        if session is None:
            raise LookupError("no capture session")
        task = session.begin_submission()
        self.pipeline.submit(
            document, task.label, cfg,
            completion=lambda result: session.finish(task.id, result),
        )
        return task
