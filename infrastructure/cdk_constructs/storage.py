"""Private S3 origin bucket readable only by CloudFront."""

from aws_cdk import RemovalPolicy
from aws_cdk import aws_cloudfront as cloudfront
from aws_cdk import aws_s3 as s3
from constructs import Construct


class StorageBucket(Construct):
  """S3 bucket that is never public; CloudFront reads it through an OAI."""

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    bucket_name: str | None = None,
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY,
  ) -> None:
    super().__init__(scope, id)

    self.bucket = s3.Bucket(
      self,
      "Bucket",
      bucket_name=bucket_name,
      public_read_access=False,
      block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
      enforce_ssl=True,
      removal_policy=removal_policy,
      # Non-empty buckets refuse deletion; empty it on teardown instead
      auto_delete_objects=removal_policy == RemovalPolicy.DESTROY,
    )

    self.access_identity = cloudfront.OriginAccessIdentity(
      self,
      "OriginAccessIdentity",
      comment=f"Read access to {bucket_name or id}",
    )
    self.grant_read(self.access_identity)

  def grant_read(self, principal: cloudfront.IOriginAccessIdentity) -> None:
    """Allow ``principal`` to read objects from the bucket."""
    self.bucket.grant_read(principal)
