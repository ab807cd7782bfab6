"""Clone a source repository and check out a commit."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from .errors import RepositoryError

logger = logging.getLogger(__name__)


def _git(args, cwd: Optional[Path] = None) -> None:
    try:
        result = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True)
    except OSError as e:
        raise RepositoryError(f"Could not run git: {e}") from e
    if result.returncode != 0:
        raise RepositoryError(f"git {args[0]} failed with exit status {result.returncode}: {result.stderr.strip()}")


def clone_repo_and_checkout_commit(repo_url: str, commit: Optional[str], dest: Path) -> Path:
    """
    Clone `repo_url` into `dest` and check out `commit` if given.

    Raises:
        RepositoryError: If cloning or checkout fails
    """
    dest = Path(dest)
    logger.info("  Cloning repository into a temporary directory.")
    _git(["clone", "--quiet", repo_url, str(dest)])

    if commit:
        logger.info("  Checking out the given commit.")
        _git(["checkout", "--quiet", commit], cwd=dest)

    logger.info("  Done.")
    return dest
