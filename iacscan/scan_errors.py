"""Errors reported to the caller as part of the scan output."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Iterable

from iacscan.errors import (
    EngineError,
    ErrorCode,
    EvaluationError,
    MissingRemoteSubmodulesError,
    MissingTermError,
    SubmoduleLoadingError,
)


class _Code(IntEnum):
    NO_PATHS = 2000

    CWD_TRAVERSAL = 2003
    OPEN_BUNDLE = 2004
    FETCH_CUSTOM_RULE_BUNDLES = 2005

    SCAN = 2100
    UNABLE_TO_RECOGNIZE_INPUT_TYPE = 2101
    UNSUPPORTED_INPUT_TYPE = 2102
    UNABLE_TO_RESOLVE_LOCATION = 2103
    UNRECOGNIZED_FILE_EXTENSION = 2104
    FAILED_TO_PARSE_INPUT = 2105
    INVALID_INPUT = 2106
    UNABLE_TO_READ_FILE = 2107
    UNABLE_TO_READ_DIR = 2108
    UNABLE_TO_READ_STDIN = 2109
    FAILED_TO_LOAD_REGO_API = 2110
    FAILED_TO_LOAD_RULES = 2111
    FAILED_TO_COMPILE = 2112
    UNABLE_TO_READ_PATH = 2113
    NO_LOADABLE_INPUT = 2114
    FAILED_TO_MAKE_RESOURCES_RESOLVERS = 2115
    RESOURCES_RESOLVER_ERROR = 2116

    PROCESS_RESULTS = 2200
    ENTITLEMENT_NOT_ENABLED = 2201
    READ_SETTINGS = 2202
    UNSUPPORTED_REPORT = 2203

    SUBMODULE_LOADING_ERROR = 3000
    MISSING_REMOTE_SUBMODULES_ERROR = 3001
    EVALUATION_ERROR = 3002
    MISSING_TERM_ERROR = 3003


@dataclass(frozen=True)
class ScanError:
    """A handled error condition, identified by its code, reported in the output."""

    message: str
    code: int
    fields: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; empty fields are left out."""
        out: dict[str, Any] = {"message": self.message, "code": int(self.code)}
        if self.fields:
            out["fields"] = {
                key: list(value) if isinstance(value, (list, tuple)) else value
                for key, value in self.fields.items()
            }
        return out


ERR_NO_PATHS = ScanError("no valid paths", _Code.NO_PATHS)
ERR_OPEN_BUNDLE = ScanError("unable to open bundle", _Code.OPEN_BUNDLE)
ERR_FETCH_CUSTOM_RULE_BUNDLES = ScanError(
    "unable to fetch custom rule bundles", _Code.FETCH_CUSTOM_RULE_BUNDLES
)
ERR_SCAN = ScanError("unable to scan", _Code.SCAN)
ERR_PROCESS_RESULTS = ScanError("unable to process the results", _Code.PROCESS_RESULTS)
ERR_ENTITLEMENT_NOT_ENABLED = ScanError(
    "entitlement 'infrastructureAsCode' is not enabled",
    _Code.ENTITLEMENT_NOT_ENABLED,
    {"entitlement": "infrastructureAsCode"},
)
ERR_READ_SETTINGS = ScanError(
    "unable to read the IaC organization settings", _Code.READ_SETTINGS
)
ERR_UNSUPPORTED_REPORT = ScanError(
    "flag --report is not yet supported when iacNewEngine flag is enabled",
    _Code.UNSUPPORTED_REPORT,
)

_ENGINE_ERRORS: dict[ErrorCode, tuple[str, _Code]] = {
    ErrorCode.UNABLE_TO_READ_FILE: ("unable to read file", _Code.UNABLE_TO_READ_FILE),
    ErrorCode.UNABLE_TO_RECOGNIZE_INPUT_TYPE: (
        "unable to recognize input type",
        _Code.UNABLE_TO_RECOGNIZE_INPUT_TYPE,
    ),
    ErrorCode.UNSUPPORTED_INPUT_TYPE: ("unsupported input type", _Code.UNSUPPORTED_INPUT_TYPE),
    ErrorCode.UNABLE_TO_RESOLVE_LOCATION: (
        "unable to resolve location",
        _Code.UNABLE_TO_RESOLVE_LOCATION,
    ),
    ErrorCode.UNRECOGNIZED_FILE_EXTENSION: (
        "unrecognized file extension",
        _Code.UNRECOGNIZED_FILE_EXTENSION,
    ),
    ErrorCode.FAILED_TO_PARSE_INPUT: ("failed to parse input", _Code.FAILED_TO_PARSE_INPUT),
    ErrorCode.INVALID_INPUT: ("invalid input for input type", _Code.INVALID_INPUT),
    ErrorCode.UNABLE_TO_READ_DIR: ("unable to read directory", _Code.UNABLE_TO_READ_DIR),
    ErrorCode.UNABLE_TO_READ_STDIN: ("unable to read stdin", _Code.UNABLE_TO_READ_STDIN),
    ErrorCode.FAILED_TO_LOAD_REGO_API: (
        "failed to load the snyk Rego API",
        _Code.FAILED_TO_LOAD_REGO_API,
    ),
    ErrorCode.FAILED_TO_LOAD_RULES: ("failed to load rules", _Code.FAILED_TO_LOAD_RULES),
    ErrorCode.FAILED_TO_COMPILE: ("failed to compile rules", _Code.FAILED_TO_COMPILE),
    ErrorCode.UNABLE_TO_READ_PATH: ("unable to read path", _Code.UNABLE_TO_READ_PATH),
    ErrorCode.NO_LOADABLE_INPUTS: ("no loadable input", _Code.NO_LOADABLE_INPUT),
}

_ENGINE_ERRORS_WITH_OWN_MESSAGE: dict[ErrorCode, _Code] = {
    ErrorCode.FAILED_TO_MAKE_RESOURCES_RESOLVERS: _Code.FAILED_TO_MAKE_RESOURCES_RESOLVERS,
    ErrorCode.RESOURCES_RESOLVER_ERROR: _Code.RESOURCES_RESOLVER_ERROR,
}


def cwd_traversal_error(path: str) -> ScanError:
    """The error for a path that leaves the current working directory."""
    return ScanError("current working directory traversal", _Code.CWD_TRAVERSAL, {"path": path})


def _from_engine_error(err: EngineError) -> ScanError | None:
    fields: dict[str, Any] = {"path": err.path} if err.path else {}
    known = _ENGINE_ERRORS.get(err.code)
    if known is not None:
        message, code = known
        return ScanError(message, code, fields)
    own = _ENGINE_ERRORS_WITH_OWN_MESSAGE.get(err.code)
    if own is not None:
        return ScanError(err.message, own, fields)
    return None


def error_to_scan_error(err: BaseException) -> ScanError:
    """Translate an engine error or warning into a ScanError; unknown errors become ERR_SCAN."""
    if isinstance(err, EngineError):
        converted = _from_engine_error(err)
        if converted is not None:
            return converted
    if isinstance(err, SubmoduleLoadingError):
        return ScanError(
            err.message,
            _Code.SUBMODULE_LOADING_ERROR,
            {"path": err.path, "module": err.module},
        )
    if isinstance(err, MissingRemoteSubmodulesError):
        return ScanError(
            err.message,
            _Code.MISSING_REMOTE_SUBMODULES_ERROR,
            {"path": err.path, "dir": err.dir, "modules": list(err.missing_modules)},
        )
    if isinstance(err, EvaluationError):
        return ScanError(
            err.message,
            _Code.EVALUATION_ERROR,
            {"path": err.path, "expressions": list(err.expressions)},
        )
    if isinstance(err, MissingTermError):
        return ScanError(
            err.message,
            _Code.MISSING_TERM_ERROR,
            {"path": err.path, "term": err.term},
        )
    return ERR_SCAN


def errors_to_scan_errors(errors: Iterable[BaseException] | None) -> list[ScanError]:
    """Translate every error in ``errors``, keeping their order."""
    return [error_to_scan_error(err) for err in errors or ()]