"""Cloud context: resolving live cloud resources and computing suppressions."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, Sequence

from iacscan.cloudapi import EnvironmentObject, ResourceObject
from iacscan.errors import EngineError, ErrorCode


class CloudContextError(Exception):
    """The cloud context for a scan could not be prepared."""


class _ResourcesClient(Protocol):
    def resources(
        self, org_id: str, environment_id: str, resource_type: str, resource_kind: str
    ) -> list[ResourceObject]: ...


class _EnvironmentsClient(_ResourcesClient, Protocol):
    def environments(self, org_id: str, environment_id: str) -> list[EnvironmentObject]: ...


@dataclass
class ResourcesQuery:
    """A request from a rule for resources of a type within a scope."""

    resource_type: str = ""
    scope: dict[str, str] = field(default_factory=dict)


@dataclass
class ResourceState:
    """A single resource returned to a rule."""

    id: str = ""
    resource_type: str = ""
    attributes: dict[str, Any] | None = None


@dataclass
class ResourcesResult:
    """The answer to a ResourcesQuery."""

    scope_found: bool = False
    resources: list[ResourceState] = field(default_factory=list)


def scope_matches(query_scope: Mapping[str, str], resource_scope: Mapping[str, Any]) -> bool:
    """Return True if every key of the query scope is matched by the resource scope.

    A query value of "*" matches anything; other values must be equal.
    """
    for key, query_value in query_scope.items():
        if query_value == "*":
            continue
        if key not in resource_scope or resource_scope[key] != query_value:
            return False
    return True


_AWS_SCOPE = {"cloud": "aws", "region": "*"}


@dataclass
class CloudResourceResolver:
    """Fetches AWS resources of one cloud environment from the cloud API."""

    environment_id: str
    client: _ResourcesClient
    org_id: str

    def get_aws_cloud_resources(self, query: ResourcesQuery) -> ResourcesResult:
        """Resolve ``query`` against the environment; errors from the client propagate."""
        if not scope_matches(query.scope, _AWS_SCOPE):
            return ResourcesResult(scope_found=False)
        if query.scope.get("cloud") != "aws":
            return ResourcesResult(scope_found=False)

        resources = self.client.resources(
            self.org_id, self.environment_id, query.resource_type, "cloud"
        )
        return ResourcesResult(
            scope_found=True,
            resources=[
                ResourceState(id=r.id, resource_type=r.type, attributes=r.state)
                for r in resources
            ],
        )

    __call__ = get_aws_cloud_resources


@dataclass
class ErrorReportingResolver:
    """Wraps a resolver and remembers the first error it raised."""

    resolver: Callable[[ResourcesQuery], ResourcesResult]
    first_error: EngineError | None = None

    def __call__(self, query: ResourcesQuery) -> ResourcesResult:
        try:
            return self.resolver(query)
        except Exception as exc:
            if self.first_error is None:
                self.first_error = EngineError(
                    message=f"An error occurred fetching cloud resources: {exc}",
                    code=ErrorCode.RESOURCES_RESOLVER_ERROR,
                )
            raise


def new_cloud_resource_resolver(
    org_id: str, environment_id: str, client: _EnvironmentsClient
) -> CloudResourceResolver:
    """Look up the environment and return a resolver for it.

    Raises CloudContextError if the environment is missing, ambiguous or not AWS.
    """
    try:
        environments = client.environments(org_id, environment_id)
    except Exception as exc:
        raise CloudContextError(
            f"Error searching for environment {environment_id}: {exc}"
        ) from exc
    if not environments:
        raise CloudContextError(f"no environment {environment_id}")
    if len(environments) > 1:
        raise CloudContextError(f"found more than one environment {environment_id}")

    environment = environments[0]
    attributes = environment.attributes
    kind = attributes.kind if attributes is not None else ""
    name = attributes.name if attributes is not None else ""
    if kind != "aws":
        raise CloudContextError(
            f"unsupported environment {name} ({environment.id}) (kind is {kind})"
        )

    return CloudResourceResolver(
        environment_id=environment.id, client=client, org_id=org_id
    )


def state_hash(value: Any) -> str:
    """Return the SHA-256 hex digest of the canonical JSON form of ``value``."""
    encoded = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _meta(state: Mapping[str, Any] | None) -> Any:
    return (state or {}).get("meta")


def find_rule_result(
    rule_id: str,
    resource_id: str,
    input: Mapping[str, Any],
    results: Sequence[Mapping[str, Any]],
) -> dict[str, Any] | None:
    """Find the rule result for a rule and resource on the same input, or None."""
    wanted = state_hash(_meta(input))
    for result in results:
        if state_hash(_meta(result.get("input"))) != wanted:
            continue
        for rule in result.get("rule_results") or ():
            if rule.get("id") != rule_id:
                continue
            for rule_result in rule.get("results") or ():
                if rule_result.get("resource_id") == resource_id:
                    return rule_result
    return None


def calculate_suppression_info(
    with_resolver: Mapping[str, Any], without_resolver: Mapping[str, Any]
) -> dict[str, list[str]] | None:
    """Map rule IDs to resources that passed only thanks to cloud context.

    Returns None when nothing was suppressed.
    """
    suppressions: dict[str, list[str]] = {}
    other_results = without_resolver.get("results") or []
    for result in with_resolver.get("results") or ():
        for rule in result.get("rule_results") or ():
            rule_id = rule.get("id", "")
            for rule_result in rule.get("results") or ():
                resource_id = rule_result.get("resource_id", "")
                other = find_rule_result(
                    rule_id, resource_id, result.get("input") or {}, other_results
                )
                if other is None:
                    continue
                if rule_result.get("passed") and not other.get("passed"):
                    suppressions.setdefault(rule_id, []).append(resource_id)
    return suppressions or None