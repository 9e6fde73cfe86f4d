"""Helpers to inspect a Git working tree without running git."""

from __future__ import annotations

import os
import re
from pathlib import Path
from urllib.parse import unquote, urlsplit

_ORIGIN_RE = re.compile(r"^(.+@)?(.+):(.+)\Z")
_SECTION_RE = re.compile(r'\[\s*([A-Za-z0-9.-]+)(?:\s+"((?:[^"\\]|\\.)*)")?\s*\]')
_ESCAPES = {"n": "\n", "t": "\t", "b": "\b"}


def _find_repository(path: str | os.PathLike[str]) -> tuple[Path, Path]:
    """Return the working tree root and the git directory that hold ``path``."""
    start = Path(os.path.abspath(path))
    if not start.exists():
        raise FileNotFoundError(f"repository does not exist: {path}")
    for candidate in (start, *start.parents):
        dot_git = candidate / ".git"
        if dot_git.is_dir():
            return candidate, dot_git
        if dot_git.is_file():
            return candidate, _read_gitdir_file(dot_git)
    raise FileNotFoundError(f"repository does not exist: {path}")


def _read_gitdir_file(dot_git: Path) -> Path:
    content = dot_git.read_text(encoding="utf-8").strip()
    prefix = "gitdir:"
    if not content.startswith(prefix):
        raise ValueError(f"invalid .git file: {dot_git}")
    target = Path(content[len(prefix):].strip())
    if not target.is_absolute():
        target = dot_git.parent / target
    return target


def _common_dir(git_dir: Path) -> Path:
    commondir = git_dir / "commondir"
    if commondir.is_file():
        target = Path(commondir.read_text(encoding="utf-8").strip())
        return target if target.is_absolute() else git_dir / target
    return git_dir


def _config_value(raw: str) -> str:
    out: list[str] = []
    quoted = False
    chars = iter(raw)
    for ch in chars:
        if ch == '"':
            quoted = not quoted
        elif ch == "\\":
            nxt = next(chars, "")
            out.append(_ESCAPES.get(nxt, nxt))
        elif ch in "#;" and not quoted:
            break
        else:
            out.append(ch)
    return "".join(out).strip()


def _remote_urls(config_text: str) -> dict[str, list[str]]:
    remotes: dict[str, list[str]] = {}
    section: tuple[str, str | None] | None = None
    for raw_line in config_text.splitlines():
        line = raw_line.strip()
        if not line or line[0] in "#;":
            continue
        header = _SECTION_RE.match(line)
        if header:
            name, sub = header.groups()
            if sub is None and "." in name:
                name, sub = name.split(".", 1)
            section = (name.lower(), sub)
            continue
        if section is None or section[0] != "remote" or section[1] is None:
            continue
        key, _, value = line.partition("=")
        if key.strip().lower() == "url":
            remotes.setdefault(section[1], []).append(_config_value(value))
    return remotes


def get_repo_root_dir(path: str | os.PathLike[str]) -> str:
    """Return the root of the working tree containing ``path``.

    Raises FileNotFoundError if no repository is found.
    """
    root, _ = _find_repository(path)
    return str(root)


def get_origin_url(path: str | os.PathLike[str]) -> str:
    """Return the sanitized URL of the ``origin`` remote, or "" if there is none.

    Raises FileNotFoundError if no repository is found.
    """
    _, git_dir = _find_repository(path)
    config = _common_dir(git_dir) / "config"
    if not config.is_file():
        return ""
    urls = _remote_urls(config.read_text(encoding="utf-8"))
    origin = urls.get("origin")
    if not origin:
        return ""
    return sanitize_url(origin[0])


def sanitize_url(raw: str) -> str:
    """Turn a remote URL (HTTP, SSH or scp-like) into an https URL."""
    try:
        parts = urlsplit(raw)
    except ValueError:
        parts = None
    if parts is not None and parts.scheme in ("http", "https", "ssh"):
        host = parts.netloc.rpartition("@")[2]
        return f"https://{host}{unquote(parts.path)}"

    match = _ORIGIN_RE.match(raw)
    if match and match.group(2) and match.group(3):
        return f"https://{match.group(2)}/{match.group(3)}"

    return raw