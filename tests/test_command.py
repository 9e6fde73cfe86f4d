import json
import os

import pytest

from iacscan.cloudapi import ForbiddenError
from iacscan.command import (
    Command,
    IgnoreSettings,
    ScanAnalytics,
    Settings,
    normalize_paths,
)
from iacscan.errors import (
    EngineError,
    ErrorCode,
    EvaluationError,
    MissingRemoteSubmodulesError,
    MissingTermError,
    SubmoduleLoadingError,
)


class FakeEngine:
    def __init__(self, results=None, errors=None, warnings=None, analytics=None):
        self.results = results
        self.errors = errors
        self.warnings = warnings
        self.analytics = analytics or ScanAnalytics()
        self.calls = []

    def run(self, **options):
        self.calls.append(options)
        return self.results, self.analytics, self.errors, self.warnings


class FakeProcessor:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def process_results(self, raw_results, scan_analytics):
        self.calls.append((raw_results, scan_analytics))
        if self.error is not None:
            raise self.error
        return self.result


class FakeSettingsReader:
    def __init__(self, settings=None, error=None):
        self.settings = settings
        self.error = error

    def read_settings(self):
        if self.error is not None:
            raise self.error
        return self.settings


class FakeDownloader:
    def __init__(self, data=b"", error=None):
        self.data = data
        self.error = error
        self.versions = []

    def download_latest_bundle(self, version, writer):
        self.versions.append(version)
        if self.error is not None:
            raise self.error
        writer.write(self.data)


class FakeRulesClient:
    def __init__(self, bundles=None, error=None):
        self.bundles = bundles
        self.error = error
        self.orgs = []

    def custom_rules(self, org_id):
        self.orgs.append(org_id)
        if self.error is not None:
            raise self.error
        return self.bundles


def entitled(**kwargs):
    return Settings(infrastructure_as_code=True, **kwargs)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PWD", str(tmp_path))
    (tmp_path / "bundle.tar.gz").write_bytes(b"")
    return tmp_path


def make_command(workdir, **kwargs):
    defaults = dict(
        output=str(workdir / "test.json"),
        bundle="bundle.tar.gz",
        results_processor=FakeProcessor(),
        settings_reader=FakeSettingsReader(entitled()),
    )
    defaults.update(kwargs)
    return Command(**defaults)


def read_output(workdir):
    return json.loads((workdir / "test.json").read_text(encoding="utf-8"))


def test_no_paths(workdir):
    cmd = make_command(workdir)
    assert cmd.run() == 0
    assert {"message": "no valid paths", "code": 2000} in read_output(workdir)["errors"]


def test_current_working_directory_traversal(workdir):
    cmd = make_command(workdir, paths=[".."])
    assert cmd.run() == 0
    errors = read_output(workdir)["errors"]
    assert {
        "message": "current working directory traversal",
        "code": 2003,
        "fields": {"path": ".."},
    } in errors
    assert {"message": "no valid paths", "code": 2000} in errors


def test_no_bundle_version_error(workdir):
    downloader = FakeDownloader(error=RuntimeError("some error"))

    def read_version():
        raise RuntimeError("some error")

    cmd = make_command(
        workdir,
        bundle="",
        paths=["dir"],
        bundle_downloader=downloader,
        read_policy_engine_version=read_version,
    )
    assert cmd.run() == 0
    assert {"message": "unable to open bundle", "code": 2004} in read_output(workdir)["errors"]
    assert downloader.versions == []


def test_bundle_download_error(workdir):
    downloader = FakeDownloader(error=RuntimeError("boom"))
    cmd = make_command(
        workdir,
        bundle="",
        paths=["."],
        bundle_downloader=downloader,
        read_policy_engine_version=lambda: "v1.2.3",
    )
    assert cmd.run() == 0
    assert downloader.versions == ["v1.2.3"]
    assert {"message": "unable to open bundle", "code": 2004} in read_output(workdir)["errors"]


def test_downloaded_bundle_is_passed_to_engine(workdir):
    engine = FakeEngine()
    cmd = make_command(
        workdir,
        bundle="",
        paths=["."],
        engine=engine,
        bundle_downloader=FakeDownloader(data=b"downloaded"),
        read_policy_engine_version=lambda: "v0.33.0",
    )
    assert cmd.run() == 0
    assert engine.calls[0]["snyk_bundle"] == b"downloaded"


def test_bundle_does_not_exist(workdir):
    cmd = make_command(workdir, paths=["."], bundle="missing.tar.gz")
    assert cmd.run() == 0
    assert {"message": "unable to open bundle", "code": 2004} in read_output(workdir)["errors"]


def test_engine_receives_options(workdir):
    (workdir / "bundle.tar.gz").write_bytes(b"bundle-bytes")
    engine = FakeEngine()
    cmd = make_command(
        workdir,
        paths=["."],
        engine=engine,
        scan="resource-changes",
        detection_depth=2,
        var_file="vars.tfvars",
    )
    assert cmd.run() == 0
    options = engine.calls[0]
    assert options["paths"] == ["."]
    assert options["snyk_bundle"] == b"bundle-bytes"
    assert options["custom_rule_bundles"] is None
    assert options["scan"] == "resource-changes"
    assert options["detection_depth"] == 2
    assert options["var_file"] == "vars.tfvars"


SCAN_ERROR_CASES = [
    (RuntimeError("error"), {"message": "unable to scan", "code": 2100}),
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
        SubmoduleLoadingError("submodule loading error", path="/path", module="submodule"),
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


@pytest.mark.parametrize("actual, expected", SCAN_ERROR_CASES)
def test_scan_error(workdir, actual, expected):
    cmd = make_command(workdir, paths=["."], engine=FakeEngine(errors=[actual]))
    assert cmd.run() == 0
    assert read_output(workdir)["errors"] == [expected]


def test_engine_warnings_are_reported(workdir):
    warning = MissingTermError("missing term error", path="main.tf", term="var.x")
    cmd = make_command(workdir, paths=["."], engine=FakeEngine(warnings=[warning]))
    assert cmd.run() == 0
    output = read_output(workdir)
    assert "errors" not in output
    assert output["warnings"] == [
        {
            "message": "missing term error",
            "code": 3003,
            "fields": {"path": "main.tf", "term": "var.x"},
        }
    ]


def test_settings(workdir):
    settings = entitled(
        org="org",
        org_public_id="org-public-id",
        ignore_settings=IgnoreSettings(
            admin_only=True, disregard_filesystem_ignores=True, reason_required=True
        ),
    )
    client = FakeRulesClient(bundles=None)
    cmd = make_command(
        workdir,
        paths=["."],
        engine=FakeEngine(),
        settings_reader=FakeSettingsReader(settings),
        snyk_client=client,
    )
    assert cmd.run() == 0
    output = read_output(workdir)
    assert "errors" not in output
    assert output["settings"] == {
        "org": "org",
        "ignoreSettings": {
            "adminOnly": True,
            "disregardFilesystemIgnores": True,
            "reasonRequired": True,
        },
    }
    assert client.orgs == ["org-public-id"]


def test_settings_error(workdir):
    cmd = make_command(
        workdir,
        paths=["."],
        engine=FakeEngine(),
        settings_reader=FakeSettingsReader(error=RuntimeError("error")),
    )
    assert cmd.run() == 0
    assert {
        "message": "unable to read the IaC organization settings",
        "code": 2202,
    } in read_output(workdir)["errors"]


def test_entitlement_not_enabled(workdir):
    engine = FakeEngine()
    cmd = make_command(
        workdir,
        paths=["."],
        engine=engine,
        settings_reader=FakeSettingsReader(Settings(org="org")),
    )
    assert cmd.run() == 0
    output = read_output(workdir)
    assert output["errors"] == [
        {
            "message": "entitlement 'infrastructureAsCode' is not enabled",
            "code": 2201,
            "fields": {"entitlement": "infrastructureAsCode"},
        }
    ]
    assert output["settings"]["org"] == "org"
    assert engine.calls == []


def test_report_unsupported_with_new_engine(workdir):
    cmd = make_command(workdir, paths=["."], engine=FakeEngine(), report=True, iac_new_engine=True)
    assert cmd.run() == 0
    assert read_output(workdir)["errors"] == [
        {
            "message": "flag --report is not yet supported when iacNewEngine flag is enabled",
            "code": 2203,
        }
    ]


def test_custom_rules_forbidden_is_ignored(workdir):
    engine = FakeEngine()
    cmd = make_command(
        workdir,
        paths=["."],
        engine=engine,
        settings_reader=FakeSettingsReader(entitled(org_public_id="org-id")),
        snyk_client=FakeRulesClient(error=ForbiddenError()),
    )
    assert cmd.run() == 0
    assert "errors" not in read_output(workdir)
    assert engine.calls[0]["custom_rule_bundles"] is None


def test_custom_rules_error(workdir):
    engine = FakeEngine()
    cmd = make_command(
        workdir,
        paths=["."],
        engine=engine,
        settings_reader=FakeSettingsReader(entitled(org_public_id="org-id")),
        snyk_client=FakeRulesClient(error=RuntimeError("down")),
    )
    assert cmd.run() == 0
    assert read_output(workdir)["errors"] == [
        {"message": "unable to fetch custom rule bundles", "code": 2005}
    ]
    assert engine.calls == []


def test_custom_rules_passed_to_engine(workdir):
    engine = FakeEngine()
    cmd = make_command(
        workdir,
        paths=["."],
        engine=engine,
        settings_reader=FakeSettingsReader(entitled(org_public_id="org-id")),
        snyk_client=FakeRulesClient(bundles=["bundle-a"]),
    )
    assert cmd.run() == 0
    assert engine.calls[0]["custom_rule_bundles"] == ["bundle-a"]
    assert engine.calls[0]["org_public_id"] == "org-id"


def test_process_results_error(workdir):
    cmd = make_command(
        workdir,
        paths=["."],
        engine=FakeEngine(),
        results_processor=FakeProcessor(error=RuntimeError("bad")),
    )
    assert cmd.run() == 0
    assert read_output(workdir)["errors"] == [
        {"message": "unable to process the results", "code": 2200}
    ]


def test_processed_results_written(workdir):
    analytics = ScanAnalytics(suppressed_results={"rule": ["res"]})
    processor = FakeProcessor(result={"vulnerabilities": []})
    cmd = make_command(
        workdir,
        paths=["."],
        engine=FakeEngine(results={"format": "f"}, analytics=analytics),
        results_processor=processor,
    )
    assert cmd.run() == 0
    assert read_output(workdir)["results"] == {"vulnerabilities": []}
    assert processor.calls == [({"format": "f"}, analytics)]


@pytest.mark.parametrize(
    "exclude, expected",
    [(False, {"format": "format"}), (True, None)],
)
def test_raw_results(workdir, exclude, expected):
    cmd = make_command(
        workdir,
        paths=["."],
        engine=FakeEngine(results={"format": "format"}),
        exclude_raw_results=exclude,
    )
    assert cmd.run() == 0
    output = read_output(workdir)
    assert "errors" not in output
    assert output.get("rawResults") == expected


def test_output_to_stdout(workdir, capsys):
    cmd = make_command(workdir, output="")
    assert cmd.run() == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["errors"] == [{"message": "no valid paths", "code": 2000}]


def test_unwritable_output_returns_one(workdir):
    cmd = make_command(workdir, output=str(workdir / "missing" / "out.json"))
    assert cmd.run() == 1


def test_unwritable_output_raises(workdir):
    cmd = make_command(workdir, output=str(workdir / "missing" / "out.json"))
    with pytest.raises(OSError, match="open output"):
        cmd.run_with_error()


@pytest.fixture
def symlinks(tmp_path):
    original = tmp_path / "original"
    original.mkdir()
    linked = tmp_path / "linked"
    os.symlink(original, linked, target_is_directory=True)
    return original, linked


@pytest.mark.parametrize(
    "cwd_name, input_name, expected",
    [
        ("original", "original", "."),
        ("original", "linked", os.path.join("..", "linked")),
        ("linked", "linked", "."),
        ("linked", "original", os.path.join("..", "original")),
    ],
)
def test_normalize_paths(symlinks, monkeypatch, cwd_name, input_name, expected):
    base = symlinks[0].parent
    cwd = str(base / cwd_name)
    monkeypatch.chdir(cwd)
    monkeypatch.setenv("PWD", cwd)
    assert normalize_paths([str(base / input_name)]) == [expected]


def test_normalize_relative_paths(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PWD", str(tmp_path))
    assert normalize_paths(["a/./b", "..", "a/../c"]) == [
        os.path.join("a", "b"),
        "..",
        "c",
    ]


def test_normalize_empty(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert normalize_paths(None) == []