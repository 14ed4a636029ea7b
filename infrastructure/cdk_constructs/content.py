"""Mirror a local build directory into the origin bucket."""

from pathlib import Path

from aws_cdk import aws_cloudfront as cloudfront
from aws_cdk import aws_s3 as s3
from aws_cdk import aws_s3_deployment as s3_deploy
from constructs import Construct


class SiteContent(Construct):
  """Deploys the build output and invalidates the distribution.

  Objects missing from the build directory are pruned from the bucket, and
  every deployment invalidates ``/*`` once the sync finishes.
  """

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    build_dir: Path,
    bucket: s3.IBucket,
    distribution: cloudfront.IDistribution,
    resource_prefix: str = "",
  ) -> None:
    super().__init__(scope, id)

    if not build_dir.is_dir():
      raise FileNotFoundError(f"Build directory not found: {build_dir}")

    self.deployment = s3_deploy.BucketDeployment(
      self,
      f"{resource_prefix}-content" if resource_prefix else "Deployment",
      sources=[s3_deploy.Source.asset(str(build_dir))],
      destination_bucket=bucket,
      distribution=distribution,
      distribution_paths=["/*"],
      prune=True,
      memory_limit=512,
    )
