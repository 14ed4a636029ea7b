#!/usr/bin/env python3
"""Republish a build directory to a site deployed with the CDK stack."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import boto3

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from infrastructure.config import Config  # noqa: E402
from infrastructure.provisioning import (  # noqa: E402
  InvalidationFailure,
  ProvisioningError,
  publish,
)
from infrastructure.provisioning.models import Distribution, OriginStore  # noqa: E402


def get_stack_outputs(cloudformation: Any, stack_name: str) -> dict[str, str]:
  """Read the stack outputs, keyed by the output name without its prefix.

  CDK prefixes output ids with the construct path, so ``BucketName`` appears
  as e.g. ``SiteBucketName1A2B3C4D``.
  """
  response = cloudformation.describe_stacks(StackName=stack_name)
  outputs: dict[str, str] = {}
  for output in response["Stacks"][0].get("Outputs", []):
    for name in ("BucketName", "DistributionId", "DistributionDomainName"):
      if output["OutputKey"].startswith(f"Site{name}"):
        outputs[name] = output["OutputValue"]
  return outputs


def main() -> None:
  """Mirror the build directory into the stack's bucket and invalidate /*."""
  parser = argparse.ArgumentParser(description="Publish site content")
  parser.add_argument("domain", help="Domain name (e.g., example.com)")
  parser.add_argument(
    "--config",
    default="sites.yaml",
    help="Path to the sites configuration (default: sites.yaml)",
  )
  parser.add_argument("--build-dir", type=Path, help="Override the build directory")
  parser.add_argument("--profile", help="AWS profile to use")
  args = parser.parse_args()

  logging.basicConfig(level=logging.INFO, format="%(message)s")

  try:
    site = Config.from_yaml(args.config).get_site(args.domain)
  except (OSError, KeyError, ValueError) as e:
    print(f"Error loading configuration: {e}", file=sys.stderr)
    sys.exit(1)

  session = boto3.Session(profile_name=args.profile, region_name=site.region)
  outputs = get_stack_outputs(session.client("cloudformation"), site.stack_name)
  missing = {"BucketName", "DistributionId", "DistributionDomainName"} - outputs.keys()
  if missing:
    print(f"Error: stack {site.stack_name} lacks outputs {sorted(missing)}", file=sys.stderr)
    sys.exit(1)

  store = OriginStore(bucket_name=outputs["BucketName"], region=site.region)
  distribution = Distribution(
    distribution_id=outputs["DistributionId"],
    domain_name=outputs["DistributionDomainName"],
    status="Deployed",
  )

  try:
    result = publish(
      session.client("s3"),
      session.client("cloudfront"),
      args.build_dir or site.build_dir,
      store,
      distribution,
    )
  except InvalidationFailure as e:
    print(f"Warning: content published but {e}", file=sys.stderr)
    sys.exit(2)
  except ProvisioningError as e:
    print(f"Error [{e.stage}]: {e}", file=sys.stderr)
    sys.exit(1)

  print(
    f"✓ Published {site.domain}: {len(result.uploaded)} uploaded, "
    f"{len(result.deleted)} deleted, {len(result.unchanged)} unchanged"
  )
  print(f"  Invalidation: {result.invalidation_id}")


if __name__ == "__main__":
  main()
