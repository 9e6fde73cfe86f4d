# iacscan

Building blocks for scanning infrastructure-as-code (Terraform, CloudFormation,
Kubernetes, ARM) and reporting what was found.

## Modules

- `iacscan.ignore`: `Matcher` and `matcher_from_policy` read `.snyk` ignore
  policies and match vulnerability IDs against resource paths. Ignores can
  carry an expiry date.
- `iacscan.git`: `get_repo_root_dir`, `get_origin_url` and `sanitize_url`.
  They find a repository's working tree root and its `origin` URL by reading
  `.git` directly, without running `git`.
- `iacscan.cloudapi`: `Client` is an HTTP client built on `httpx`. It fetches
  custom rule bundles, creates scans, lists environments and lists resources.
  The module also has `serialize_engine_results`.
- `iacscan.platform`: `SnykPlatformClient.share_results` uploads engine
  results as a scan and returns its URL.
- `iacscan.cloud_context`: resolves live AWS resources for a cloud
  environment and works out which results passed only because of cloud
  context (`calculate_suppression_info`).
- `iacscan.inputs`: JSON and YAML syntax checks, the Terraform plan resource
  filter, and hidden-file detection.
- `iacscan.errors`: engine error types and `ErrorCode`.
- `iacscan.scan_errors`: `ScanError`, and the mapping from engine errors to
  the numeric codes that are reported to callers.
- `iacscan.flags`: `build_parser()` returns an `argparse` parser for the
  options of the IaC test command.
- `iacscan.input_paths`: picks the input paths from the command arguments
  and finds the `.snyk` policy file.
- `iacscan.ui`: `UI` shows the title, a progress bar and a completion
  message through a user-interface object that you supply.
- `iacscan.command`: `Command` runs a scan and writes the JSON output
  document.

## Ignore policies

```python
from datetime import datetime, timedelta, timezone

from iacscan.ignore import Matcher, matcher_from_policy

now = datetime.now(timezone.utc)

matcher = Matcher()
matcher.add_ignore("RULE-1", now + timedelta(hours=1), "foo > *")
matcher.match("RULE-1", now, "foo", "bar")   # True
matcher.match("RULE-2", now, "foo", "bar")   # False

with open(".snyk", "rb") as fh:
    policy_matcher = matcher_from_policy(fh.read())
```

A pattern is a list of path components separated by `" > "`. A `*`
component matches any single component, and a trailing `*` matches the rest
of the path. An expiry of `None` means the ignore never expires. Naive
datetimes are taken as UTC.

`add_ignore` raises `ValueError` for an empty vulnerability ID or an empty
pattern. `matcher_from_policy` raises `ValueError` for a malformed policy.

## Remote URLs

```python
from iacscan.git import sanitize_url

sanitize_url("git@example.com:user/repo.git")
# 'https://example.com/user/repo.git'
sanitize_url("ssh://git@example.com/user/repo.git")
# 'https://example.com/user/repo.git'
```

`get_repo_root_dir` and `get_origin_url` raise `FileNotFoundError` when no
repository contains the path. `get_origin_url` returns `""` when there is no
`origin` remote.

## Cloud API

```python
from iacscan.cloudapi import Client, ClientConfig, ForbiddenError

client = Client(ClientConfig(url="https://api.example.com", version="2022-04-13~experimental"))
try:
    bundles = client.custom_rules("org-id")
except ForbiddenError:
    bundles = []
for bundle in bundles:
    print(bundle.path, bundle.checksum)
```

A `RuleBundle` carries the bundle's path inside the downloaded tar archive,
the SHA-256 of its `.tar.gz` bytes, and the regular files it contains. A
403 response raises `ForbiddenError`. Any other status except 200 raises
`CloudAPIError`. With `iac_new_engine=True`, `custom_rules` uses the
`rule_bundles` endpoint.

`serialize_engine_results(results)` writes the JSON of `results` as
`output.json` in a zip archive and returns that archive base64-encoded.

## Input paths

```python
from iacscan.input_paths import determine_input_paths, get_policy_file

determine_input_paths(["iac", "test", "-flag", "/path/one"], "/current/directory")
# ['/path/one']
determine_input_paths(["iac", "test"], "/current/directory")
# ['/current/directory']

get_policy_file("", "/some/project")   # '/some/project/.snyk' if it exists, else ''
```

A `.snyk` file found through the `policy_path_flag` argument takes precedence
over the one in the root directory.

## Running a scan

`Command` works with collaborators that you supply:

- `settings_reader.read_settings()` returns a `Settings`.
- `engine.run(**options)` returns
  `(raw_results, ScanAnalytics, errors, warnings)`.
- `results_processor.process_results(raw_results, analytics)` returns the
  processed results.
- `snyk_client.custom_rules(org_id)` returns the custom rule bundles.
- Without a local `bundle` path, `bundle_downloader` and
  `read_policy_engine_version` are used to download the rule bundle.

`Command.run()` writes the JSON document to `output`, or to stdout when
`output` is empty. It returns 0, or 1 if the document could not be written.
Problems found during the scan do not fail the command. They are reported
as entries under `errors` and `warnings` in the document.

## Error codes

Each scan error carries a stable numeric code:

| Codes | Meaning |
| ----- | ------- |
| 2000, 2003–2005 | no valid paths, directory traversal, bundle and custom-rule problems |
| 2100–2116 | scan and input errors |
| 2200–2203 | result processing, entitlement, settings and unsupported `--report` |
| 3000–3003 | warnings from loading Terraform modules and evaluating expressions |

See `iacscan.scan_errors.error_to_scan_error`.

## What this package does not do

- It has no policy engine. Nothing here loads Terraform, CloudFormation,
  Kubernetes or ARM files into resources or evaluates rules against them.
  `Command` needs an engine object to be passed in.
- It does not read organization settings, download the rule bundle or
  process results into a findings report. Those are also collaborators that
  you pass to `Command`.
- It installs no command-line program. `iacscan.flags.build_parser()` only
  builds the parser.