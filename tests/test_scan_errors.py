import pytest

from iacscan.errors import (
    EngineError,
    ErrorCode,
    EvaluationError,
    MissingRemoteSubmodulesError,
    MissingTermError,
    SubmoduleLoadingError,
)
from iacscan.scan_errors import (
    ERR_NO_PATHS,
    ERR_OPEN_BUNDLE,
    ERR_READ_SETTINGS,
    ERR_SCAN,
    cwd_traversal_error,
    error_to_scan_error,
    errors_to_scan_errors,
)

CASES = [
    (Exception("error"), {"message": "unable to scan", "code": 2100}),
    (
        EngineError("", ErrorCode.UNABLE_TO_READ_FILE, "/path"),
        {"message": "unable to read file", "code": 2107, "fields": {"path": "/path"}},
    ),
    (
        EngineError("", ErrorCode.UNABLE_TO_RECOGNIZE_INPUT_TYPE, "/path"),
        {"message": "unable to recognize input type", "code": 2101, "fields": {"path": "/path"}},
    ),
    (
        EngineError("", ErrorCode.UNSUPPORTED_INPUT_TYPE),
        {"message": "unsupported input type", "code": 2102},
    ),
    (
        EngineError("", ErrorCode.UNABLE_TO_RESOLVE_LOCATION, "/path"),
        {"message": "unable to resolve location", "code": 2103, "fields": {"path": "/path"}},
    ),
    (
        EngineError("", ErrorCode.UNRECOGNIZED_FILE_EXTENSION),
        {"message": "unrecognized file extension", "code": 2104},
    ),
    (
        EngineError("", ErrorCode.FAILED_TO_PARSE_INPUT),
        {"message": "failed to parse input", "code": 2105},
    ),
    (
        EngineError("", ErrorCode.INVALID_INPUT),
        {"message": "invalid input for input type", "code": 2106},
    ),
    (
        EngineError("", ErrorCode.UNABLE_TO_READ_DIR, "/path"),
        {"message": "unable to read directory", "code": 2108, "fields": {"path": "/path"}},
    ),
    (
        EngineError("", ErrorCode.UNABLE_TO_READ_STDIN, "/path"),
        {"message": "unable to read stdin", "code": 2109, "fields": {"path": "/path"}},
    ),
    (
        EngineError("", ErrorCode.FAILED_TO_LOAD_REGO_API),
        {"message": "failed to load the snyk Rego API", "code": 2110},
    ),
    (
        EngineError("", ErrorCode.FAILED_TO_LOAD_RULES),
        {"message": "failed to load rules", "code": 2111},
    ),
    (
        EngineError("", ErrorCode.FAILED_TO_COMPILE),
        {"message": "failed to compile rules", "code": 2112},
    ),
    (
        EngineError("", ErrorCode.UNABLE_TO_READ_PATH, "/path"),
        {"message": "unable to read path", "code": 2113, "fields": {"path": "/path"}},
    ),
    (
        EngineError("", ErrorCode.NO_LOADABLE_INPUTS),
        {"message": "no loadable input", "code": 2114},
    ),
    (
        SubmoduleLoadingError(
            "submodule loading error", path="/path", module="submodule"
        ),
        {
            "message": "submodule loading error",
            "code": 3000,
            "fields": {"path": "/path", "module": "submodule"},
        },
    ),
    (
        MissingRemoteSubmodulesError(
            "missing remote submodules",
            path="/path",
            dir="/dir",
            missing_modules=["module1", "module2"],
        ),
        {
            "message": "missing remote submodules",
            "code": 3001,
            "fields": {"path": "/path", "dir": "/dir", "modules": ["module1", "module2"]},
        },
    ),
    (
        EvaluationError("evaluation error", path="/path", expressions=["expr1", "expr2"]),
        {
            "message": "evaluation error",
            "code": 3002,
            "fields": {"path": "/path", "expressions": ["expr1", "expr2"]},
        },
    ),
    (
        MissingTermError("missing term error", path="/path", term="term"),
        {
            "message": "missing term error",
            "code": 3003,
            "fields": {"path": "/path", "term": "term"},
        },
    ),
]


@pytest.mark.parametrize("err, expected", CASES)
def test_error_to_scan_error(err, expected):
    assert error_to_scan_error(err).to_dict() == expected


def test_resolver_errors_keep_their_message():
    err = EngineError("cloud went away", ErrorCode.RESOURCES_RESOLVER_ERROR)
    converted = error_to_scan_error(err)
    assert converted.message == "cloud went away"
    assert converted.code == 2116


def test_engine_error_with_warning_code_falls_back_to_scan_error():
    err = EngineError("x", ErrorCode.MISSING_TERM_ERROR)
    assert error_to_scan_error(err) == ERR_SCAN


def test_errors_to_scan_errors_keeps_order():
    converted = errors_to_scan_errors(
        [EngineError("", ErrorCode.FAILED_TO_COMPILE), Exception("boom")]
    )
    assert [e.code for e in converted] == [2112, 2100]


def test_errors_to_scan_errors_empty():
    assert errors_to_scan_errors(None) == []


def test_cwd_traversal_error():
    assert cwd_traversal_error("..").to_dict() == {
        "message": "current working directory traversal",
        "code": 2003,
        "fields": {"path": ".."},
    }


def test_fixed_errors():
    assert ERR_NO_PATHS.to_dict() == {"message": "no valid paths", "code": 2000}
    assert ERR_OPEN_BUNDLE.to_dict() == {"message": "unable to open bundle", "code": 2004}
    assert ERR_READ_SETTINGS.to_dict() == {
        "message": "unable to read the IaC organization settings",
        "code": 2202,
    }