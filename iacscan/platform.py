"""Sharing scan results with the platform."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from iacscan.cloudapi import CreateScanRequest, CreateScanResponse, serialize_engine_results

_SCANS_API_VERSION = "2022-12-21~beta"


class PlatformError(Exception):
    """Sharing results with the platform failed."""


class _ScanCreator(Protocol):
    def create_scan(
        self, org_id: str, request: CreateScanRequest, use_internal_endpoint: bool
    ) -> CreateScanResponse: ...


@dataclass
class ShareResultsOptions:
    """Describes where the shared results come from."""

    org_public_id: str = ""
    kind: str = ""
    name: str = ""
    branch: str = ""
    commit_sha: str = ""
    run_id: str = ""
    source_uri: str = ""
    source_type: str = ""
    project_id: str = ""
    allow_analytics: bool = False


@dataclass
class ShareResultsOutput:
    """What the platform returned for shared results."""

    url: str = ""
    project_ids: dict[str, str] = field(default_factory=dict)


@dataclass
class SnykPlatformClient:
    """Uploads engine results to the platform as a scan."""

    cloud_api_client: _ScanCreator
    stub_resources: Callable[[Any], Any]
    serialize_engine_results: Callable[[Any], str] = serialize_engine_results
    rest_api_url: str = ""

    def share_results(self, engine_results: Any, opts: ShareResultsOptions) -> ShareResultsOutput:
        """Create a scan from ``engine_results`` and return its URL."""
        stubbed = self.stub_resources(engine_results)
        try:
            artifacts = self.serialize_engine_results(stubbed)
        except Exception as exc:
            raise PlatformError(f"serialize engine results: {exc}") from exc

        request = CreateScanRequest(
            kind=opts.kind,
            artifacts=artifacts,
            name=opts.name,
            branch=opts.branch,
            commit_sha=opts.commit_sha,
            run_id=opts.run_id,
            project_id=opts.project_id,
            source_uri=opts.source_uri,
            source_type=opts.source_type,
        )
        use_internal_endpoint = opts.kind != "cli"

        try:
            response = self.cloud_api_client.create_scan(
                opts.org_public_id, request, use_internal_endpoint
            )
        except Exception as exc:
            raise PlatformError(f"failed to store scan results: {exc}") from exc

        url = (
            f"{self.rest_api_url}/rest/orgs/{opts.org_public_id}"
            f"/cloud/scans/{response.id}?version={_SCANS_API_VERSION}"
        )
        return ShareResultsOutput(url=url)