import base64
import logging
from typing import Any, Dict, Optional, Set
from urllib.parse import quote

import requests

logger = logging.getLogger("submission.github")

DEFAULT_API_BASE = "https://api.github.com"
# RFC 3986 pchar minus "/", so each segment is encoded on its own
_SEGMENT_SAFE = "!$&'()*+,;=:@"


class GitHubError(Exception):
    pass


class PathEncodingError(GitHubError):
    pass


class GitHubTransportError(GitHubError):
    pass


class GitHubAPIError(GitHubError):
    def __init__(self, status: int, body: str):
        super().__init__(f"HTTP {status}: {body}")
        self.status = status
        self.body = body


class VersionConflict(GitHubAPIError):
    pass


def encode_path(path: str) -> str:
    segments = [s for s in path.split("/") if s]
    try:
        return "/".join(quote(s, safe=_SEGMENT_SAFE) for s in segments)
    except UnicodeEncodeError as e:
        raise PathEncodingError(f"cannot encode repository path {path!r}") from e


class GitHubContentsClient:
    """
    Thin wrapper over the GitHub Contents API for one repository and branch.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        branch: str = "main",
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.branch = branch or "main"
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._token = token
        self.session = session or requests.Session()

    def __repr__(self) -> str:
        return f"GitHubContentsClient({self.owner}/{self.repo}@{self.branch})"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"token {self._token}",
            "Accept": "application/vnd.github+json",
        }

    def _url(self, path: str) -> str:
        base = f"{self.api_base}/repos/{self.owner}/{self.repo}/contents"
        encoded = encode_path(path)
        return f"{base}/{encoded}" if encoded else base

    def get_file_sha(self, path: str) -> Optional[str]:
        """
        Returns the blob sha of `path`, or None when the file does not exist.
        Anything short of a 200 with a sha (404, other statuses, network
        errors, odd bodies) counts as absent.
        """
        try:
            url = self._url(path)
        except PathEncodingError:
            logger.warning("Unencodable path %r treated as absent", path)
            return None
        try:
            resp = self.session.get(
                url, params={"ref": self.branch}, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning("Existence check for %s failed: %s", path, e)
            return None

        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            logger.info("Existence check for %s returned HTTP %d", path, resp.status_code)
            return None
        try:
            data = resp.json()
        except ValueError:
            return None
        sha = data.get("sha") if isinstance(data, dict) else None
        return sha if isinstance(sha, str) else None

    def exists(self, path: str) -> bool:
        return self.get_file_sha(path) is not None

    def put_file(self, path: str, content: bytes, message: str, sha: Optional[str] = None) -> Dict[str, Any]:
        """Creates `path` or, when `sha` is given, updates it."""
        url = self._url(path)
        payload: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            payload["sha"] = sha

        try:
            resp = self.session.put(url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise GitHubTransportError(str(e)) from e

        logger.info("PUT %s -> HTTP %d", path, resp.status_code)
        if resp.status_code in (200, 201):
            try:
                return resp.json()
            except ValueError:
                return {}
        if resp.status_code == 409:
            raise VersionConflict(resp.status_code, resp.text)
        raise GitHubAPIError(resp.status_code, resp.text)

    def list_svg_names(self, folder: str = "") -> Set[str]:
        """Names (without extension) of the .svg files directly under `folder`."""
        url = self._url(folder.strip())
        try:
            resp = self.session.get(
                url, params={"ref": self.branch}, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as e:
            raise GitHubTransportError(str(e)) from e

        if resp.status_code != 200:
            raise GitHubAPIError(resp.status_code, resp.text or f"HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise GitHubAPIError(resp.status_code, "unparsable listing") from e

        if isinstance(data, dict):
            entries = [data]
        elif isinstance(data, list):
            entries = data
        else:
            raise GitHubAPIError(resp.status_code, "unexpected listing shape")

        names = set()
        for item in entries:
            if not isinstance(item, dict) or item.get("type") != "file":
                continue
            name = item.get("name")
            if isinstance(name, str) and name.lower().endswith(".svg"):
                names.add(name[:-4])
        return names
