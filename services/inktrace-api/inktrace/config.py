import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

from .capture.ingestion.models import DestinationOverride
from .capture.submission.naming import NamingPolicy
from .capture.submission.pipeline import GitHubUploadConfig

load_dotenv()

# Default to local ./data next to the package; override with INKTRACE_DATA_DIR
DEFAULT_DATA_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "data"))


def data_dir() -> Path:
    return Path(os.environ.get("INKTRACE_DATA_DIR", DEFAULT_DATA_DIR))


def svg_dir() -> Path:
    return data_dir() / "svg"


def naming_policy() -> NamingPolicy:
    value = os.environ.get("INKTRACE_NAMING", "codepoint").strip().lower()
    if value not in ("codepoint", "ascii"):
        raise ValueError(f"INKTRACE_NAMING must be 'codepoint' or 'ascii', got {value!r}")
    return value  # type: ignore[return-value]


def serialize_uploads() -> bool:
    return os.environ.get("INKTRACE_SERIALIZE_UPLOADS", "").strip().lower() in ("1", "true", "yes", "on")


def github_api_base() -> str:
    return os.environ.get("INKTRACE_GH_API", "https://api.github.com")


def github_config(override: Optional[DestinationOverride] = None) -> GitHubUploadConfig:
    """Destination from the environment, with any per-request fields on top."""
    branch = os.environ.get("INKTRACE_GH_BRANCH", "").strip() or "main"
    cfg = GitHubUploadConfig(
        owner=os.environ.get("INKTRACE_GH_OWNER", "").strip(),
        repo=os.environ.get("INKTRACE_GH_REPO", "").strip(),
        branch=branch,
        prefix=os.environ.get("INKTRACE_GH_PREFIX", "").strip(),
        token=os.environ.get("INKTRACE_GH_TOKEN", ""),
    )
    if override is None:
        return cfg
    updates = {k: v for k, v in override.model_dump().items() if v is not None}
    if "branch" in updates and not updates["branch"].strip():
        updates["branch"] = "main"
    return cfg.model_copy(update=updates)
