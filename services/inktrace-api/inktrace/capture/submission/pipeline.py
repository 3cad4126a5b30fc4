import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Literal, Optional, Tuple
from pydantic import BaseModel

from ..stroke_engine.svg_document import VectorDocument
from .dedup import resolve_unique_path
from .github_contents import (
    GitHubContentsClient,
    GitHubError,
    GitHubTransportError,
    VersionConflict,
)
from .naming import SVG_EXT, NamingPolicy, file_stem, split_name

logger = logging.getLogger("submission.pipeline")

ErrorKind = Literal["missing_configuration", "save_failed", "upload_failed"]


class GitHubUploadConfig(BaseModel):
    owner: str = ""
    repo: str = ""
    branch: str = "main"
    prefix: str = ""
    token: str = ""

    def is_complete(self) -> bool:
        return bool(self.owner.strip() and self.repo.strip() and self.token)

    def __repr__(self) -> str:
        # Keep the token out of logs and tracebacks
        return f"GitHubUploadConfig(owner={self.owner!r}, repo={self.repo!r}, branch={self.branch!r}, prefix={self.prefix!r})"

    __str__ = __repr__


class SubmissionError(Exception):
    kind: ErrorKind = "upload_failed"

    def __init__(self, reason: str = ""):
        super().__init__(reason)
        self.reason = reason


class MissingConfiguration(SubmissionError):
    kind = "missing_configuration"

    def __init__(self, reason: str = "GitHub destination is not configured"):
        super().__init__(reason)


class SaveFailed(SubmissionError):
    kind = "save_failed"


class UploadFailed(SubmissionError):
    kind = "upload_failed"


class SubmissionResult(BaseModel):
    success: bool
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    remote_path: Optional[str] = None
    local_path: Optional[str] = None

    @classmethod
    def failed(cls, error: SubmissionError, local_path: Optional[Path] = None) -> "SubmissionResult":
        return cls(
            success=False,
            error_kind=error.kind,
            message=error.reason,
            local_path=str(local_path) if local_path else None,
        )


ClientFactory = Callable[[GitHubUploadConfig], GitHubContentsClient]
Completion = Callable[[SubmissionResult], None]
Dispatch = Callable[..., object]


def default_client_factory(config: GitHubUploadConfig) -> GitHubContentsClient:
    return GitHubContentsClient(
        owner=config.owner.strip(),
        repo=config.repo.strip(),
        token=config.token,
        branch=config.branch.strip() or "main",
    )


class SubmissionPipeline:
    """
    Save -> config check -> dedup -> create-or-update, one terminal result per call.

    Concurrent submissions of the same label may race between dedup and
    upload. Set `serialize_same_name` to hold a process-local lock per
    (destination, folder, stem) across that window.
    """

    def __init__(
        self,
        output_dir: Path,
        naming_policy: NamingPolicy = "codepoint",
        client_factory: ClientFactory = default_client_factory,
        serialize_same_name: bool = False,
    ):
        self.output_dir = Path(output_dir)
        self.naming_policy = naming_policy
        self.client_factory = client_factory
        self.serialize_same_name = serialize_same_name
        # key -> [lock, holders and waiters]
        self._locks: Dict[Tuple[str, ...], list] = {}
        self._locks_guard = threading.Lock()

    def file_name_for(self, label: str) -> str:
        return file_stem(label, self.naming_policy) + SVG_EXT

    def run(self, document: VectorDocument, label: str, config: GitHubUploadConfig) -> SubmissionResult:
        file_name = self.file_name_for(label)
        local_path = self.output_dir / file_name
        try:
            self._save(document, local_path)
            if not config.is_complete():
                raise MissingConfiguration()

            client = self.client_factory(config)
            folder = config.prefix.strip()
            with self._lock_for(config, file_name):
                remote_path = resolve_unique_path(client.exists, folder, file_name)
                self._upload(client, local_path, remote_path)
        except SubmissionError as e:
            logger.warning("Submission of %r failed (%s): %s", label, e.kind, e.reason)
            return SubmissionResult.failed(e, local_path if local_path.exists() else None)
        except Exception as e:
            logger.exception("Unexpected failure submitting %r", label)
            return SubmissionResult.failed(UploadFailed(str(e)), local_path if local_path.exists() else None)

        logger.info("Uploaded %r to %s", label, remote_path)
        return SubmissionResult(
            success=True,
            message="uploaded",
            remote_path=remote_path,
            local_path=str(local_path),
        )

    def submit(
        self,
        document: VectorDocument,
        label: str,
        config: GitHubUploadConfig,
        completion: Completion,
        dispatch: Optional[Dispatch] = None,
    ) -> threading.Thread:
        """
        Runs the pipeline on a worker thread and calls `completion` exactly once.
        `dispatch(fn, result)` (e.g. `loop.call_soon_threadsafe`) moves the
        callback onto the caller's execution context.
        """
        def _worker():
            result = self.run(document, label, config)
            try:
                if dispatch is not None:
                    dispatch(completion, result)
                else:
                    completion(result)
            except Exception:
                logger.exception("Completion handler for %r raised", label)

        t = threading.Thread(target=_worker, name=f"submit-{label}", daemon=True)
        t.start()
        return t

    def _save(self, document: VectorDocument, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=SVG_EXT)
        except OSError as e:
            raise SaveFailed(f"could not save {path.name}: {e}") from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(document.to_bytes())
            os.replace(tmp, path)
        except OSError as e:
            try:
                os.unlink(tmp)
            except OSError:
                logger.warning("Could not remove temp file %s", tmp)
            raise SaveFailed(f"could not save {path.name}: {e}") from e
        logger.debug("Saved %s", path)

    def _upload(self, client: GitHubContentsClient, local_path: Path, remote_path: str) -> None:
        # Only set when dedup fell back to overwriting an existing file
        sha = client.get_file_sha(remote_path)
        try:
            content = local_path.read_bytes()
        except OSError as e:
            raise UploadFailed(f"could not read {local_path.name}: {e}") from e

        _, stem, ext = split_name(remote_path)
        try:
            client.put_file(remote_path, content, message=f"Add {stem}{ext}", sha=sha)
        except VersionConflict as e:
            raise UploadFailed("version conflict, retry") from e
        except GitHubTransportError as e:
            raise UploadFailed(f"transport error: {e}") from e
        except GitHubError as e:
            raise UploadFailed(str(e)) from e

    @contextmanager
    def _lock_for(self, config: GitHubUploadConfig, file_name: str):
        if not self.serialize_same_name:
            yield
            return
        key = (config.owner, config.repo, config.branch, config.prefix.strip(), file_name)
        with self._locks_guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                # Last holder or waiter drops the entry
                if entry[1] == 0:
                    del self._locks[key]
