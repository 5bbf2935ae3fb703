"""External GitHub repositories: shallow clone, pull, remove and metadata."""

import json
import re
import shutil
import subprocess
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Sequence

from .errors import RepoFetchError
from .logging_config import get_logger

logger = get_logger(__name__)

REPOS_DIR = "repos"
REPOS_METADATA_FILE = "repos-metadata.json"

_URL_PATTERNS = (
    re.compile(r"github\.com[/:]([^/\s]+)/([^/\s]+?)(?:\.git)?/?$"),
    re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+?)(?:\.git)?$"),
)

GitRunner = Callable[[Sequence[str], Optional[Path]], None]


@dataclass
class RepoInfo:
    owner: str
    name: str
    url: str
    path: str
    indexed_at: str

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_github_url(value: str) -> tuple[str, str, str]:
    """Parse ``owner/name`` or a github.com URL into (owner, name, clone_url)."""
    value = value.strip()
    for pattern in _URL_PATTERNS:
        match = pattern.search(value)
        if match:
            owner, name = match.group(1), match.group(2)
            return owner, name, f"https://github.com/{owner}/{name}.git"
    raise RepoFetchError(f"Invalid GitHub repository URL: {value}")


def run_git(args: Sequence[str], cwd: Optional[Path] = None) -> None:
    """Run a git command, raising RepoFetchError on failure."""
    if not shutil.which("git"):
        raise RepoFetchError("git is not installed or not on PATH")
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            timeout=600,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise RepoFetchError(f"git {args[0]} failed: {e}") from e
    if result.returncode != 0:
        raise RepoFetchError(f"git {args[0]} failed: {result.stderr.strip() or result.stdout.strip()}")


class RepoManager:
    """Keeps checkouts under ``<storage>/repos/<owner>/<name>``."""

    def __init__(self, storage_dir: str | Path, git: GitRunner = run_git):
        self.storage_dir = Path(storage_dir)
        self.repos_path = self.storage_dir / REPOS_DIR
        self.metadata_path = self.storage_dir / REPOS_METADATA_FILE
        self._git = git
        self._repos: dict[str, RepoInfo] = {}

    def initialize(self) -> None:
        self.repos_path.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self) -> None:
        try:
            data = json.loads(self.metadata_path.read_text(encoding="utf-8"))
            repos = [RepoInfo(**entry) for entry in data]
        except FileNotFoundError:
            repos = []
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Ignoring unreadable %s: %s", self.metadata_path, e)
            repos = []
        self._repos = {repo.key: repo for repo in repos}

    def _save(self) -> None:
        self.metadata_path.parent.mkdir(parents=True, exist_ok=True)
        self.metadata_path.write_text(
            json.dumps([asdict(repo) for repo in self._repos.values()], indent=2),
            encoding="utf-8",
        )

    def repos(self) -> list[RepoInfo]:
        return list(self._repos.values())

    def get(self, key: str) -> Optional[RepoInfo]:
        return self._repos.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._repos

    def fetch(self, url: str, update_existing: bool = True) -> RepoInfo:
        """Clone a repository, or pull it when it is already known.

        Raises:
            RepoFetchError: bad URL, git failure, or a known repo with
                ``update_existing`` False
        """
        owner, name, clone_url = parse_github_url(url)
        key = f"{owner}/{name}"

        if key in self._repos:
            if not update_existing:
                raise RepoFetchError(f"Repository {key} is already added")
            return self.refresh(key)

        repo_path = self.repos_path / owner / name
        repo_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Cloning %s into %s", clone_url, repo_path)
        self._git(["clone", "--depth", "1", clone_url, str(repo_path)], None)

        repo = RepoInfo(
            owner=owner,
            name=name,
            url=clone_url,
            path=str(repo_path),
            indexed_at=_now(),
        )
        self._repos[key] = repo
        self._save()
        return repo

    def refresh(self, key: str) -> RepoInfo:
        repo = self._require(key)
        logger.info("Pulling latest changes for %s", key)
        self._git(["pull"], Path(repo.path))
        repo.indexed_at = _now()
        self._save()
        return repo

    def remove(self, key: str) -> None:
        repo = self._require(key)
        try:
            shutil.rmtree(repo.path)
        except FileNotFoundError:
            logger.debug("Checkout for %s already gone", key)
        except OSError as e:
            raise RepoFetchError(f"Could not delete {repo.path}: {e}") from e
        del self._repos[key]
        self._save()
        logger.info("Removed repository %s", key)

    def _require(self, key: str) -> RepoInfo:
        repo = self._repos.get(key)
        if repo is None:
            raise RepoFetchError(f"Repository not found: {key}")
        return repo


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
