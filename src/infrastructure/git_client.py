import asyncio
import logging
import re
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from git import Git
from git.exc import GitCommandError, GitCommandNotFound

from src.domain.exceptions import VersionControlException

logger = logging.getLogger(__name__)

BOT_NAME = "internal-contribution-forks[bot]"
DEFAULT_TIMEOUT = 300.0
# Extra time for GitPython to kill the child before the asyncio guard fires
TIMEOUT_GRACE = 5.0

_CREDENTIALS_IN_URL = re.compile(r"(https?://)[^/@\s]+@")


def build_auth_url(token: str, owner: str, repo: str, host: str = "github.com") -> str:
    """Credential-bearing HTTPS remote: https://<token>@<host>/<owner>/<repo>.git"""
    return f"https://{token}@{host}/{owner}/{repo}.git"


def mask_credentials(text: str) -> str:
    return _CREDENTIALS_IN_URL.sub(r"\1***@", text)


def bot_email(installation_id: Optional[int]) -> str:
    """Noreply address tying commits back to the installation that produced them."""
    return f"{installation_id}+{BOT_NAME}@users.noreply.github.com"


@asynccontextmanager
async def temporary_directory(prefix: str = "mirror-") -> AsyncIterator[Path]:
    """Scratch directory removed on every exit path, including cancellation."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    logger.debug(f"Created working directory {path}")
    try:
        yield path
    finally:
        await asyncio.to_thread(shutil.rmtree, path, True)
        logger.debug(f"Removed working directory {path}")


class GitClient:
    """
    Async facade over the git binary, scoped to one working directory.

    GitPython calls block, so each command runs in a worker thread and is bounded by `timeout`.
    """

    def __init__(self, workdir: Path, timeout: float = DEFAULT_TIMEOUT):
        self.workdir = Path(workdir)
        self.timeout = timeout
        self._git = Git(str(self.workdir))
        # Fail fast on bad credentials instead of waiting for a prompt
        self._git.update_environment(GIT_TERMINAL_PROMPT="0")

    async def _run(self, *args: str) -> str:
        command = ["git", *args]
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._git.execute, command, kill_after_timeout=self.timeout),
                timeout=self.timeout + TIMEOUT_GRACE,
            )
        except (GitCommandError, GitCommandNotFound) as e:
            message = mask_credentials(str(e))
            logger.error(f"git {args[0]} failed: {message}")
            raise VersionControlException(f"git {args[0]} failed: {message}") from e
        except asyncio.TimeoutError as e:
            logger.error(f"git {args[0]} timed out after {self.timeout}s")
            raise VersionControlException(f"git {args[0]} timed out after {self.timeout}s") from e

    async def clone(self, remote_url: str) -> None:
        await self._run("clone", remote_url, ".")

    async def configure_identity(self, user_name: str, user_email: str) -> None:
        await self._run("config", "user.name", user_name)
        await self._run("config", "user.email", user_email)

    async def add_remote(self, name: str, remote_url: str) -> None:
        await self._run("remote", "add", name, remote_url)

    async def push(self, remote: str, branch: str) -> None:
        await self._run("push", remote, branch)

    async def checkout_branch(self, branch: str, start_point: str) -> None:
        await self._run("checkout", "-b", branch, start_point)
