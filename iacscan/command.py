"""The scan command: reads settings, runs the engine and writes a JSON report."""

from __future__ import annotations

import dataclasses
import io
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, TextIO

from iacscan.cloudapi import ForbiddenError
from iacscan.scan_errors import (
    ERR_ENTITLEMENT_NOT_ENABLED,
    ERR_FETCH_CUSTOM_RULE_BUNDLES,
    ERR_NO_PATHS,
    ERR_OPEN_BUNDLE,
    ERR_PROCESS_RESULTS,
    ERR_READ_SETTINGS,
    ERR_SCAN,
    ERR_UNSUPPORTED_REPORT,
    ScanError,
    cwd_traversal_error,
    errors_to_scan_errors,
)

_log = logging.getLogger(__name__)


@dataclass
class IgnoreSettings:
    """How ignores are handled for the organization."""

    admin_only: bool = False
    disregard_filesystem_ignores: bool = False
    reason_required: bool = False


@dataclass
class Settings:
    """The IaC settings and entitlements of the organization."""

    org: str = ""
    org_public_id: str = ""
    infrastructure_as_code: bool = False
    ignore_settings: IgnoreSettings = field(default_factory=IgnoreSettings)


@dataclass
class ScanAnalytics:
    """Data about a scan collected for analytics."""

    suppressed_results: dict[str, list[str]] | None = None


class _Engine(Protocol):
    def run(self, **options: Any) -> tuple[Any, ScanAnalytics, list[Exception] | None, list[Exception] | None]: ...


class _ResultsProcessor(Protocol):
    def process_results(self, raw_results: Any, scan_analytics: ScanAnalytics) -> Any: ...


class _SettingsReader(Protocol):
    def read_settings(self) -> Settings: ...


class _BundleDownloader(Protocol):
    def download_latest_bundle(self, policy_engine_version: str, writer: io.BufferedIOBase) -> None: ...


class _RulesClient(Protocol):
    def custom_rules(self, org_id: str) -> list[Any]: ...


@dataclass
class _ScanOutput:
    engine_results: Any = None
    engine_analytics: ScanAnalytics = field(default_factory=ScanAnalytics)
    scan_results: Any = None
    scan_errors: list[ScanError] = field(default_factory=list)
    scan_warnings: list[ScanError] = field(default_factory=list)
    settings: Settings | None = None


def _getwd() -> str:
    """Return the working directory, preferring $PWD when it names the same directory."""
    pwd = os.environ.get("PWD")
    if pwd and os.path.isabs(pwd):
        try:
            if os.path.samefile(pwd, "."):
                return pwd
        except OSError:
            pass
    return os.getcwd()


def normalize_paths(paths: list[str] | None) -> list[str]:
    """Return ``paths`` relative to the current working directory.

    Raises OSError if the working directory cannot be read and ValueError
    if a path cannot be expressed relative to it.
    """
    try:
        cwd = _getwd()
    except OSError as exc:
        raise OSError(f"read current working directory: {exc}") from exc

    normalized = []
    for path in paths or ():
        absolute = os.path.normpath(os.path.join(cwd, path))
        try:
            normalized.append(os.path.relpath(absolute, cwd))
        except ValueError as exc:
            raise ValueError(f"get relative path: {exc}") from exc
    return normalized


def _json_default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"cannot serialize {type(value).__name__}")


@dataclass
class Command:
    """Scans the configured paths and writes the outcome as JSON."""

    output: str = ""
    engine: _Engine | None = None
    paths: list[str] = field(default_factory=list)
    bundle: str = ""
    results_processor: _ResultsProcessor | None = None
    snyk_cloud_environment: str = ""
    snyk_client: _RulesClient | None = None
    scan: str = ""
    detection_depth: int = 0
    var_file: str = ""
    settings_reader: _SettingsReader | None = None
    bundle_downloader: _BundleDownloader | None = None
    read_policy_engine_version: Callable[[], str] | None = None
    exclude_raw_results: bool = False
    allow_analytics: bool = False
    report: bool = False
    iac_new_engine: bool = False
    logger: logging.Logger = field(default_factory=lambda: _log)

    def run(self) -> int:
        """Run the command; return 0 on success and 1 if the report could not be written."""
        try:
            self.run_with_error()
        except Exception as exc:
            self.logger.error("%s", exc)
            return 1
        return 0

    def run_with_error(self) -> None:
        """Run the command; raise if the report could not be written."""
        self._print(self._scan())

    def _scan(self) -> _ScanOutput:
        output = _ScanOutput()

        try:
            settings = self.settings_reader.read_settings()
        except Exception as exc:
            self.logger.error("read settings: %s", exc)
            output.scan_errors.append(ERR_READ_SETTINGS)
            return output

        output.settings = settings

        if not settings.infrastructure_as_code:
            output.scan_errors.append(ERR_ENTITLEMENT_NOT_ENABLED)
            return output

        if self.report and self.iac_new_engine:
            output.scan_errors.append(ERR_UNSUPPORTED_REPORT)
            return output

        try:
            paths = normalize_paths(self.paths)
        except (OSError, ValueError) as exc:
            self.logger.error("normalize paths: %s", exc)
            output.scan_errors.append(ERR_SCAN)
            return output

        valid_paths = []
        for path in paths:
            if ".." in path:
                output.scan_errors.append(cwd_traversal_error(path))
            else:
                valid_paths.append(path)

        if not valid_paths:
            output.scan_errors.append(ERR_NO_PATHS)
            return output

        try:
            bundle = self._open_bundle()
        except Exception as exc:
            self.logger.error("open bundle: %s", exc)
            output.scan_errors.append(ERR_OPEN_BUNDLE)
            return output

        try:
            custom_rules = self._custom_rule_bundles(settings.org_public_id)
        except Exception as exc:
            self.logger.error("%s", exc)
            output.scan_errors.append(ERR_FETCH_CUSTOM_RULE_BUNDLES)
            return output

        engine_results, engine_analytics, engine_errors, engine_warnings = self.engine.run(
            paths=valid_paths,
            snyk_bundle=bundle,
            custom_rule_bundles=custom_rules,
            org_public_id=settings.org_public_id,
            snyk_cloud_environment=self.snyk_cloud_environment,
            snyk_client=self.snyk_client,
            scan=self.scan,
            detection_depth=self.detection_depth,
            var_file=self.var_file,
            logger=self.logger,
        )

        if not self.exclude_raw_results:
            output.engine_results = engine_results
        output.engine_analytics = engine_analytics
        output.scan_errors.extend(errors_to_scan_errors(engine_errors))
        output.scan_warnings.extend(errors_to_scan_errors(engine_warnings))

        try:
            output.scan_results = self.results_processor.process_results(
                engine_results, engine_analytics
            )
        except Exception as exc:
            self.logger.error("process results: %s", exc)
            output.scan_errors.append(ERR_PROCESS_RESULTS)

        return output

    def _open_bundle(self) -> bytes:
        if self.bundle:
            self.logger.info("using the local bundle")
            with open(self.bundle, "rb") as handle:
                return handle.read()

        if self.read_policy_engine_version is None:
            raise RuntimeError("find policy-engine dependency version: not available")
        try:
            version = self.read_policy_engine_version()
        except Exception as exc:
            raise RuntimeError(f"find policy-engine dependency version {exc}") from exc

        self.logger.info("using policy engine version: %s", version)

        buffer = io.BytesIO()
        try:
            self.bundle_downloader.download_latest_bundle(version, buffer)
        except Exception as exc:
            raise RuntimeError(f"download bundle: {exc}") from exc
        return buffer.getvalue()

    def _custom_rule_bundles(self, org_id: str) -> list[Any] | None:
        if not org_id:
            return None
        try:
            return self.snyk_client.custom_rules(org_id)
        except ForbiddenError:
            return None
        except Exception as exc:
            raise RuntimeError(f"read custom rules: {exc}") from exc

    def _render(self, output: _ScanOutput) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if output.scan_results is not None:
            data["results"] = output.scan_results
        if output.engine_results is not None:
            data["rawResults"] = output.engine_results
        if output.scan_errors:
            data["errors"] = [e.to_dict() for e in output.scan_errors]
        if output.scan_warnings:
            data["warnings"] = [w.to_dict() for w in output.scan_warnings]

        settings = output.settings
        ignore = settings.ignore_settings if settings is not None else IgnoreSettings()
        data["settings"] = {
            "org": settings.org if settings is not None else "",
            "ignoreSettings": {
                "adminOnly": ignore.admin_only,
                "disregardFilesystemIgnores": ignore.disregard_filesystem_ignores,
                "reasonRequired": ignore.reason_required,
            },
        }
        return data

    def _print(self, output: _ScanOutput) -> None:
        data = self._render(output)
        if not self.output:
            self._write(sys.stdout, data)
            return
        try:
            handle = open(self.output, "w", encoding="utf-8")
        except OSError as exc:
            raise OSError(f"open output: {exc}") from exc
        with handle:
            self._write(handle, data)

    @staticmethod
    def _write(stream: TextIO, data: dict[str, Any]) -> None:
        stream.write(json.dumps(data, separators=(",", ":"), default=_json_default))
        stream.write("\n")