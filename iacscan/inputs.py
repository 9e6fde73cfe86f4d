"""Syntax checks for IaC inputs, hidden-file detection and plan filtering."""

from __future__ import annotations

import json
import os
import stat
import sys
from typing import Any, Mapping

import yaml


class FailedToParseInput(Exception):
    """The input is not syntactically valid."""

    def __init__(self, message: str = "failed to parse input") -> None:
        super().__init__(message)


class InvalidInput(Exception):
    """The input parses, but does not have the shape of an IaC document."""

    def __init__(self, message: str = "invalid input for input type") -> None:
        super().__init__(message)


def _check_shape(value: Any) -> None:
    if value is not None and not isinstance(value, dict):
        raise InvalidInput()


def validate_json(contents: bytes | str) -> None:
    """Raise FailedToParseInput or InvalidInput unless ``contents`` is a JSON object."""
    try:
        value = json.loads(contents)
    except (ValueError, UnicodeDecodeError) as exc:
        raise FailedToParseInput() from exc
    _check_shape(value)


def validate_yaml(contents: bytes | str) -> None:
    """Raise FailedToParseInput or InvalidInput unless every YAML document is a mapping."""
    try:
        documents = list(yaml.safe_load_all(contents))
    except (yaml.YAMLError, ValueError) as exc:
        raise FailedToParseInput() from exc
    for document in documents:
        _check_shape(document)


_VALIDATORS = {
    ".json": validate_json,
    ".yaml": validate_yaml,
    ".yml": validate_yaml,
}


def validate_syntax(path: str, contents: bytes | str) -> None:
    """Validate ``contents`` according to the extension of ``path``, if it has a validator."""
    extension = os.path.splitext(path)[1].lower()
    validator = _VALIDATORS.get(extension)
    if validator is not None:
        validator(contents)


def tf_plan_filter(resource: Mapping[str, Any]) -> bool:
    """Keep resources that are created or updated by a Terraform plan, or not from a plan."""
    meta = resource.get("meta") or {}
    tfplan = meta.get("tfplan") if isinstance(meta, Mapping) else None
    if not isinstance(tfplan, Mapping):
        return True
    actions = tfplan.get("resource_actions")
    if isinstance(actions, list):
        return any(action in ("create", "update") for action in actions)
    return False


def is_hidden_file_name(name: str) -> bool:
    """Return True for dot-files, except the current directory "."."""
    return name != "." and name.startswith(".")


def _base_name(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/" + os.sep)
    if not stripped:
        return os.sep
    return os.path.basename(stripped)


def is_hidden(path: str) -> bool:
    """Return True if ``path`` is hidden on this platform."""
    if sys.platform == "win32":
        attributes = os.stat(path).st_file_attributes
        return bool(attributes & stat.FILE_ATTRIBUTE_HIDDEN)
    return is_hidden_file_name(_base_name(path))