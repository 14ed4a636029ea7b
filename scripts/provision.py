#!/usr/bin/env python3
"""Provision a static site with boto3 and publish its build output."""

import argparse
import logging
import sys
from pathlib import Path

import boto3

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from infrastructure.config import Config  # noqa: E402
from infrastructure.provisioning import (  # noqa: E402
  ProvisioningClients,
  ProvisioningError,
  ProvisioningReport,
  ProvisioningState,
  Provisioner,
)


def print_transition(state: ProvisioningState, report: ProvisioningReport) -> None:
  """Echo each completed stage for the operator."""
  print(f"✓ {state.name}")


def print_summary(report: ProvisioningReport) -> None:
  if report.distribution is not None:
    print(f"  Distribution: {report.distribution.distribution_id}")
    print(f"  Address:      {report.distribution.domain_name}")
  if report.publish_result is not None:
    result = report.publish_result
    print(
      f"  Published:    {len(result.uploaded)} uploaded, "
      f"{len(result.deleted)} deleted, {len(result.unchanged)} unchanged"
    )
  print(f"  URL:          https://{report.domain}")


def main() -> None:
  """Run every provisioning stage for one configured site."""
  parser = argparse.ArgumentParser(description="Provision a static site on AWS")
  parser.add_argument("domain", help="Domain name (e.g., example.com)")
  parser.add_argument(
    "--config",
    default="sites.yaml",
    help="Path to the sites configuration (default: sites.yaml)",
  )
  parser.add_argument("--build-dir", type=Path, help="Override the build directory")
  parser.add_argument("--profile", help="AWS profile to use")
  parser.add_argument("--verbose", action="store_true", help="Show library logs")
  args = parser.parse_args()

  logging.basicConfig(
    level=logging.INFO if args.verbose else logging.WARNING,
    format="%(levelname)s %(name)s: %(message)s",
  )

  try:
    site = Config.from_yaml(args.config).get_site(args.domain)
  except (OSError, KeyError, ValueError) as e:
    print(f"Error loading configuration: {e}", file=sys.stderr)
    sys.exit(1)

  session = boto3.Session(profile_name=args.profile, region_name=site.region)
  if site.account is not None:
    account = session.client("sts").get_caller_identity()["Account"]
    if account != site.account:
      print(
        f"Error: credentials are for account {account}, site expects {site.account}",
        file=sys.stderr,
      )
      sys.exit(1)

  provisioner = Provisioner(
    site,
    ProvisioningClients.from_session(session, site.region),
    on_transition=print_transition,
  )

  print(f"Provisioning {site.domain}...")
  try:
    report = provisioner.run(args.build_dir)
  except ProvisioningError as e:
    print(f"Error [{e.stage}]: {e}", file=sys.stderr)
    sys.exit(1)

  print_summary(report)
  if report.warnings:
    for warning in report.warnings:
      print(f"Warning: {warning}", file=sys.stderr)
    sys.exit(2)


if __name__ == "__main__":
  main()
