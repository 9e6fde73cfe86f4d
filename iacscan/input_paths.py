"""Input paths and .snyk policy file lookup for the IaC test command."""

from __future__ import annotations

import logging
import os
from typing import Iterable

_COMMANDS = ("iac", "test")
_POLICY_FILE = ".snyk"

_log = logging.getLogger(__name__)


def determine_input_paths(args: Iterable[str], cwd: str) -> list[str]:
    """Return the arguments that are neither commands nor flags, or ``[cwd]`` if none."""
    paths = [arg for arg in args if arg not in _COMMANDS and not arg.startswith("-")]
    return paths or [cwd]


def _policy_file_at_path(path: str) -> str:
    """Return the .snyk file next to or inside ``path``; raise FileNotFoundError if missing."""
    try:
        is_dir = os.path.isdir(path)
        os.stat(path)
    except OSError as exc:
        raise FileNotFoundError(f"error for path {path}: {exc}") from exc

    directory = path if is_dir else os.path.dirname(path)
    policy_path = os.path.join(directory, _POLICY_FILE)
    try:
        os.stat(policy_path)
    except OSError as exc:
        raise FileNotFoundError(f"error getting .snyk at path {policy_path}: {exc}") from exc
    return policy_path


def get_policy_file(
    policy_path_flag: str, root_dir: str, logger: logging.Logger | None = None
) -> str:
    """Find the .snyk policy file to use, or return "" if there is none.

    A file found through ``policy_path_flag`` takes precedence over the one in ``root_dir``.
    """
    log = logger if logger is not None else _log

    policy_path = ""
    try:
        policy_path = _policy_file_at_path(root_dir)
    except FileNotFoundError as exc:
        log.debug(".snyk policy not found in current working directory: %s", exc)

    if policy_path_flag:
        try:
            from_flag = _policy_file_at_path(policy_path_flag)
        except FileNotFoundError as exc:
            log.debug(".snyk policy not found using --policy-path flag: %s", exc)
        else:
            log.debug("Using .snyk policy from --policy-path flag")
            return from_flag

    if policy_path:
        log.debug("Using .snyk policy from current working directory")
    return policy_path