"""Known error conditions reported while loading and evaluating IaC inputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


class ErrorCode(IntEnum):
    """One of the known error conditions that can occur while scanning."""

    NO_LOADABLE_INPUTS = 0
    UNABLE_TO_RECOGNIZE_INPUT_TYPE = 1
    UNSUPPORTED_INPUT_TYPE = 2
    UNABLE_TO_RESOLVE_LOCATION = 3
    UNRECOGNIZED_FILE_EXTENSION = 4
    FAILED_TO_PARSE_INPUT = 5
    INVALID_INPUT = 6
    UNABLE_TO_READ_FILE = 7
    UNABLE_TO_READ_DIR = 8
    UNABLE_TO_READ_STDIN = 9
    FAILED_TO_LOAD_REGO_API = 10
    FAILED_TO_LOAD_RULES = 11
    FAILED_TO_COMPILE = 12
    UNABLE_TO_READ_PATH = 13
    FAILED_TO_MAKE_RESOURCES_RESOLVERS = 14
    RESOURCES_RESOLVER_ERROR = 15
    SUBMODULE_LOADING_ERROR = 16
    MISSING_REMOTE_SUBMODULES_ERROR = 17
    EVALUATION_ERROR = 18
    MISSING_TERM_ERROR = 19


@dataclass
class EngineError(Exception):
    """A known error condition, with a debugging message and an optional path."""

    message: str
    code: ErrorCode
    path: str = ""

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        text = f"engine error {int(self.code)}: {self.message}"
        if self.path:
            text += f": {self.path}"
        return text


@dataclass
class SubmoduleLoadingError(Exception):
    """A Terraform submodule could not be loaded."""

    message: str
    code: ErrorCode = ErrorCode.SUBMODULE_LOADING_ERROR
    path: str = ""
    module: str = ""

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


@dataclass
class MissingRemoteSubmodulesError(Exception):
    """Remote Terraform submodules were referenced but not downloaded."""

    message: str
    code: ErrorCode = ErrorCode.MISSING_REMOTE_SUBMODULES_ERROR
    path: str = ""
    dir: str = ""
    missing_modules: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


@dataclass
class EvaluationError(Exception):
    """Some Terraform expressions could not be evaluated."""

    message: str
    code: ErrorCode = ErrorCode.EVALUATION_ERROR
    path: str = ""
    expressions: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


@dataclass
class MissingTermError(Exception):
    """A Terraform term referenced by the configuration was not found."""

    message: str
    code: ErrorCode = ErrorCode.MISSING_TERM_ERROR
    path: str = ""
    term: str = ""

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message