"""Client for the cloud scans, rule bundles, environments and resources APIs."""

from __future__ import annotations

import base64
import hashlib
import io
import json
import tarfile
import zipfile
from dataclasses import dataclass, field
from typing import Any

import httpx

_VERSION_LEGACY_API = "2022-12-21~beta"
_VERSION_INTERNAL_API = "2022-12-21~beta"
_VERSION_RULE_BUNDLES_API = "2024-09-24~beta"

_JSON_API = "application/vnd.api+json"


class CloudAPIError(Exception):
    """A request to the cloud API failed."""


class ForbiddenError(CloudAPIError):
    """The organization is not allowed to access the requested resource."""

    def __init__(self, message: str = "forbidden") -> None:
        super().__init__(message)


@dataclass
class ClientConfig:
    """Settings for a Client; a default HTTP client is created when none is given."""

    url: str
    version: str = ""
    http_client: httpx.Client | None = None
    iac_new_engine: bool = False


@dataclass
class CreateScanRequest:
    """The body of a "create scan" request."""

    kind: str = ""
    artifacts: str = ""
    name: str = ""
    branch: str = ""
    commit_sha: str = ""
    run_id: str = ""
    project_id: str = ""
    source_uri: str = ""
    source_type: str = ""
    type: str = "scan"

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON:API document sent to the server."""
        options = {
            key: value
            for key, value in (
                ("branch", self.branch),
                ("commit_sha", self.commit_sha),
                ("run_id", self.run_id),
            )
            if value
        }
        metadata: dict[str, Any] = {"name": self.name}
        if self.project_id:
            metadata["project_id"] = self.project_id
        metadata["options"] = {
            "source_uri": self.source_uri,
            "source_type": self.source_type,
        }
        return {
            "data": {
                "attributes": {
                    "kind": self.kind,
                    "artifacts": self.artifacts,
                    "options": options,
                    "environment_metadata": metadata,
                },
                "type": self.type,
            }
        }


@dataclass
class CreateScanResponse:
    """The reply to a "create scan" request."""

    id: str = ""

    @classmethod
    def from_dict(cls, document: Any) -> CreateScanResponse:
        data = document.get("data") if isinstance(document, dict) else None
        if not isinstance(data, dict):
            return cls()
        return cls(id=str(data.get("id") or ""))


@dataclass
class EnvironmentAttributes:
    """Attributes of a cloud environment."""

    name: str = ""
    native_id: str = ""
    kind: str = ""
    revision: int = 0
    created_at: str = ""
    status: str = ""
    error: str = ""
    updated_at: str = ""
    updated_by: str = ""
    options: Any = None
    properties: Any = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> EnvironmentAttributes:
        return cls(
            name=raw.get("name") or "",
            native_id=raw.get("native_id") or "",
            kind=raw.get("kind") or "",
            revision=int(raw.get("revision") or 0),
            created_at=raw.get("created_at") or "",
            status=raw.get("status") or "",
            error=raw.get("error") or "",
            updated_at=raw.get("updated_at") or "",
            updated_by=raw.get("updated_by") or "",
            options=raw.get("options"),
            properties=raw.get("properties"),
        )


@dataclass
class EnvironmentObject:
    """A cloud environment as returned by the environments API."""

    id: str = ""
    type: str = ""
    attributes: EnvironmentAttributes | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> EnvironmentObject:
        attributes = raw.get("attributes")
        return cls(
            id=raw.get("id") or "",
            type=raw.get("type") or "",
            attributes=(
                EnvironmentAttributes.from_dict(attributes)
                if isinstance(attributes, dict)
                else None
            ),
        )


@dataclass
class ResourceObject:
    """A cloud resource with its recorded state."""

    id: str = ""
    type: str = ""
    state: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ResourceObject:
        attributes = raw.get("attributes")
        state = None
        if isinstance(attributes, dict):
            for key, value in attributes.items():
                if key.lower() == "state" and isinstance(value, dict):
                    state = value
        return cls(id=raw.get("id") or "", type=raw.get("type") or "", state=state)


@dataclass(frozen=True)
class RuleBundle:
    """A custom rules bundle, shipped as a gzipped tar archive."""

    path: str
    checksum: str
    files: dict[str, bytes] = field(default_factory=dict)

    @classmethod
    def from_archive(cls, path: str, data: bytes) -> RuleBundle:
        """Read the bundle at ``path`` from its .tar.gz bytes; raise ValueError if invalid."""
        files: dict[str, bytes] = {}
        try:
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as archive:
                for member in archive:
                    if not member.isreg():
                        continue
                    extracted = archive.extractfile(member)
                    if extracted is not None:
                        files[member.name] = extracted.read()
        except (tarfile.TarError, OSError, EOFError) as exc:
            raise ValueError(f"read bundle {path}: {exc}") from exc
        return cls(path=path, checksum=hashlib.sha256(data).hexdigest(), files=files)


def _read_bundles(body: bytes) -> list[RuleBundle]:
    if not body:
        return []
    bundles: list[RuleBundle] = []
    try:
        with tarfile.open(fileobj=io.BytesIO(body), mode="r:") as archive:
            for member in archive:
                if not member.isreg():
                    continue
                extracted = archive.extractfile(member)
                data = extracted.read() if extracted is not None else b""
                bundles.append(RuleBundle.from_archive(member.name, data))
    except tarfile.TarError as exc:
        raise CloudAPIError(f"read rule bundles: {exc}") from exc
    return bundles


def _parse_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except ValueError as exc:
        raise CloudAPIError(f"could not parse response: {exc}") from exc


def _data_list(document: Any) -> list[dict[str, Any]]:
    if not isinstance(document, dict):
        raise CloudAPIError("could not parse response: not a JSON object")
    data = document.get("data")
    if data is None:
        return []
    if not isinstance(data, list):
        raise CloudAPIError("could not parse response: 'data' is not a list")
    return [item for item in data if isinstance(item, dict)]


class Client:
    """Talks to the cloud API of the platform."""

    def __init__(self, config: ClientConfig) -> None:
        self._http = config.http_client if config.http_client is not None else httpx.Client()
        self._url = config.url
        self._version = config.version
        self._iac_new_engine = config.iac_new_engine

    def _fetch_bundles(self, url: str, version: str) -> list[RuleBundle]:
        response = self._http.get(
            url,
            params={"version": version},
            headers={"Accept": "application/octet-stream"},
        )
        if response.status_code == httpx.codes.FORBIDDEN:
            raise ForbiddenError()
        if response.status_code != httpx.codes.OK:
            raise CloudAPIError(
                f"invalid status code: {response.status_code}, "
                f"response body: {response.text}"
            )
        return _read_bundles(response.content)

    def custom_rules(self, org_id: str) -> list[RuleBundle]:
        """Download the custom rule bundles of an organization."""
        if self._iac_new_engine:
            url = f"{self._url}/hidden/orgs/{org_id}/cloud/rule_bundles"
            return self._fetch_bundles(url, _VERSION_RULE_BUNDLES_API)
        url = f"{self._url}/hidden/orgs/{org_id}/cloud/custom_rules"
        return self._fetch_bundles(url, _VERSION_LEGACY_API)

    def custom_rules_internal(self, org_id: str) -> list[RuleBundle]:
        """Download the custom rule bundles of an organization from the internal API."""
        url = f"{self._url}/internal/orgs/{org_id}/cloud/custom_rules"
        return self._fetch_bundles(url, _VERSION_INTERNAL_API)

    def create_scan(
        self,
        org_id: str,
        request: CreateScanRequest | None,
        use_internal_endpoint: bool,
    ) -> CreateScanResponse:
        """Upload scan results and return the created scan."""
        area = "internal" if use_internal_endpoint else "hidden"
        url = f"{self._url}/{area}/orgs/{org_id}/cloud/scans"
        document = request.to_dict() if request is not None else None
        response = self._http.post(
            url,
            params={"version": self._version},
            headers={"Content-Type": _JSON_API},
            content=(json.dumps(document) + "\n").encode("utf-8"),
        )
        if response.status_code != httpx.codes.OK:
            raise CloudAPIError(f"invalid status code: {response.status_code}")
        return CreateScanResponse.from_dict(_parse_json(response.content))

    def environments(self, org_id: str, environment_id: str) -> list[EnvironmentObject]:
        """Look up cloud environments by ID."""
        response = self._http.get(
            f"{self._url}/rest/orgs/{org_id}/cloud/environments",
            params={"id": environment_id, "version": self._version},
            headers={"Content-Type": _JSON_API},
        )
        if response.status_code != httpx.codes.OK:
            raise CloudAPIError(f"invalid status code: {response.status_code}")
        return [
            EnvironmentObject.from_dict(item)
            for item in _data_list(_parse_json(response.content))
        ]

    def resources(
        self,
        org_id: str,
        environment_id: str,
        resource_type: str,
        resource_kind: str,
    ) -> list[ResourceObject]:
        """List the resources of an environment, filtered by type and kind."""
        response = self._http.get(
            f"{self._url}/rest/orgs/{org_id}/cloud/resources",
            params={
                "environment_id": environment_id,
                "resource_type": resource_type,
                "kind": resource_kind,
                "version": self._version,
            },
            headers={"Content-Type": _JSON_API},
        )
        if response.status_code != httpx.codes.OK:
            raise CloudAPIError(f"invalid status code: {response.status_code}")
        return [
            ResourceObject.from_dict(item)
            for item in _data_list(_parse_json(response.content))
        ]


def serialize_engine_results(results: Any) -> str:
    """Zip the JSON of ``results`` as output.json and return it base64-encoded."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("output.json", json.dumps(results) + "\n")
    return base64.b64encode(buffer.getvalue()).decode("ascii")