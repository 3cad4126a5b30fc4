import hashlib
import threading
from typing import Dict, List, Optional, Set

import pytest

from inktrace.capture.submission.github_contents import (
    GitHubAPIError,
    GitHubTransportError,
    VersionConflict,
)
from inktrace.capture.submission.pipeline import GitHubUploadConfig, SubmissionPipeline


class FakeContentsStore:
    """In-memory stand-in for one repository branch of the Contents API."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None):
        self.files: Dict[str, bytes] = dict(files or {})
        self.calls: List[tuple] = []
        self.put_status: Optional[int] = None  # force a failure status on PUT
        self.transport_error: Optional[str] = None
        self.list_error: Optional[Exception] = None
        self._lock = threading.Lock()

    def client(self, config: GitHubUploadConfig) -> "FakeContentsStore":
        self.calls.append(("client", config.owner, config.repo, config.branch))
        return self

    def get_file_sha(self, path: str) -> Optional[str]:
        self.calls.append(("get", path))
        with self._lock:
            content = self.files.get(path)
        return hashlib.sha1(content).hexdigest() if content is not None else None

    def exists(self, path: str) -> bool:
        return self.get_file_sha(path) is not None

    def put_file(self, path: str, content: bytes, message: str, sha: Optional[str] = None) -> dict:
        self.calls.append(("put", path, message, sha))
        if self.transport_error:
            raise GitHubTransportError(self.transport_error)
        if self.put_status == 409:
            raise VersionConflict(409, '{"message": "sha does not match"}')
        if self.put_status is not None:
            raise GitHubAPIError(self.put_status, '{"message": "boom"}')
        with self._lock:
            self.files[path] = content
        return {"content": {"path": path}}

    def list_svg_names(self, folder: str = "") -> Set[str]:
        self.calls.append(("list", folder))
        if self.list_error:
            raise self.list_error
        prefix = folder.strip("/") + "/" if folder.strip("/") else ""
        names = set()
        for path in self.files:
            if not path.startswith(prefix):
                continue
            rest = path[len(prefix):]
            if "/" not in rest and rest.lower().endswith(".svg"):
                names.add(rest[:-4])
        return names

    @property
    def network_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] != "client"]


@pytest.fixture
def store():
    return FakeContentsStore()


@pytest.fixture
def gh_config():
    return GitHubUploadConfig(owner="octo", repo="samples", branch="main", prefix="handwriting", token="t0ken")


@pytest.fixture
def pipeline(tmp_path, store):
    return SubmissionPipeline(output_dir=tmp_path / "svg", client_factory=store.client)
