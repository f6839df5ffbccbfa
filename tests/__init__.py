"""Test suite package configuration.

Puts the repository root on ``sys.path`` so the root-level modules import
when pytest runs through its console script.
"""

import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parent.parent


def _ensure_repo_on_path() -> None:
    repo_root_str = str(_REPO_ROOT)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_on_path()
