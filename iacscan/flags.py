"""Command-line flags of the IaC test command."""

from __future__ import annotations

import argparse

FLAG_ORG = "org"
FLAG_REPORT = "report"
FLAG_SEVERITY_THRESHOLD = "severity-threshold"
FLAG_IGNORE_POLICY = "ignore-policy"
FLAG_POLICY_PATH = "policy-path"
FLAG_TARGET_REFERENCE = "target-reference"
FLAG_TARGET_NAME = "target-name"
FLAG_REMOTE_REPO_URL = "remote-repo-url"
FLAG_SNYK_CLOUD_ENVIRONMENT = "snyk-cloud-environment"
FLAG_SCAN = "scan"
FLAG_DEPTH_DETECTION = "depth-detection"
FLAG_VAR_FILE = "var-file"
FLAG_JSON = "json"
FLAG_JSON_FILE_OUTPUT = "json-file-output"
FLAG_SARIF = "sarif"
FLAG_SARIF_FILE_OUTPUT = "sarif-file-output"
FLAG_PROJECT_BUSINESS_CRITICALITY = "project-business-criticality"
FLAG_PROJECT_ENVIRONMENT = "project-environment"
FLAG_PROJECT_LIFECYCLE = "project-lifecycle"
FLAG_PROJECT_TAGS = "project-tags"

_STRING_FLAGS = [
    (FLAG_ORG, "", "Specify the Organization ID to run commands tied to a specific Snyk Organization."),
    (FLAG_SNYK_CLOUD_ENVIRONMENT, "", "ID of the Snyk Cloud environment to get context for scan."),
    (
        FLAG_SCAN,
        "resource-changes",
        "Use this dedicated option for Terraform plan scanning modes to control whether the scan "
        "analyzes the full final state or the proposed changes only.",
    ),
    (
        FLAG_VAR_FILE,
        "",
        "Use this option to load a terraform variable definitions file that is located in a "
        "different directory from the scanned one.",
    ),
    (FLAG_POLICY_PATH, "", "Path to a .snyk policy file."),
    (FLAG_SEVERITY_THRESHOLD, "", "Report only vulnerabilities at the specified level or higher."),
    (
        FLAG_TARGET_NAME,
        "",
        "Used in Share Results to set or override the project name for the repository. ",
    ),
    (
        FLAG_TARGET_REFERENCE,
        "",
        "Used in Share Results to specify a reference which differentiates this project, "
        "e.g. a branch name or version.",
    ),
    (
        FLAG_REMOTE_REPO_URL,
        "",
        "Used in Share Results to set or override the remote URL for the repository. ",
    ),
    (
        FLAG_JSON_FILE_OUTPUT,
        "",
        "Save test output as a JSON data structure directly to the specified file, regardless "
        "of whether or not you use the --json option.",
    ),
    (
        FLAG_SARIF_FILE_OUTPUT,
        "",
        "Save test output in SARIF format directly to the specified file, regardless of whether "
        "or not you use the --sarif option.",
    ),
    (
        FLAG_PROJECT_BUSINESS_CRITICALITY,
        "",
        "Set the project business criticality project attribute to one or more values "
        "(comma-separated).",
    ),
    (
        FLAG_PROJECT_ENVIRONMENT,
        "",
        "Set the project environment project attribute to one or more values (comma-separated).",
    ),
    (
        FLAG_PROJECT_LIFECYCLE,
        "",
        "Set the project lifecycle project attribute to one or more values (comma-separated).",
    ),
    (
        FLAG_PROJECT_TAGS,
        "",
        'Set the project tags to one or more values (comma-separated key value pairs with an "=" '
        "separator).",
    ),
]

_BOOL_FLAGS = [
    (FLAG_IGNORE_POLICY, "Ignore the policy file."),
    (FLAG_REPORT, "Share results with the Snyk Web UI."),
    (FLAG_JSON, "Print results on the console as a JSON data structure."),
    (FLAG_SARIF, "Return results in SARIF format."),
]


def build_parser() -> argparse.ArgumentParser:
    """Return a parser for the flags of the IaC test command.

    Options are stored under their names with dashes replaced by underscores.
    """
    parser = argparse.ArgumentParser(prog="snyk-cli-extension-iac-test")
    for name, default, help_text in _STRING_FLAGS:
        parser.add_argument(f"--{name}", default=default, help=help_text)
    parser.add_argument(
        f"--{FLAG_DEPTH_DETECTION}",
        type=int,
        default=0,
        help="Indicate how many levels of subdirectories to search. Must be a number, 1 or "
        "greater; zero (0) is the current directory.",
    )
    for name, help_text in _BOOL_FLAGS:
        parser.add_argument(f"--{name}", action="store_true", help=help_text)
    return parser