"""Main composite construct for complete static website infrastructure."""

from pathlib import Path

from aws_cdk import CfnOutput, RemovalPolicy, Stack
from constructs import Construct

from .certificate import DnsValidatedCertificate
from .content import SiteContent
from .distribution import CloudFrontDistribution
from .dns import DnsRecords
from .edge_function import IndexRewriteFunction
from .storage import StorageBucket


class StaticSiteConstruct(Construct):
  """Complete static website infrastructure.

  Creates, in dependency order:
  - Route 53 hosted zone reference (looked up or imported, never created)
  - ACM certificate (DNS validated against that zone)
  - Private S3 bucket with a CloudFront origin access identity
  - CloudFront Function rewriting directory URIs to index.html
  - CloudFront distribution with HTTPS and index.html error fallbacks
  - (Optional) Build output deployment with /* invalidation
  - A and AAAA alias records pointing at the distribution
  """

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    domain_name: str,
    hosted_zone_id: str | None = None,
    include_www: bool = False,
    bucket_name: str | None = None,
    build_dir: Path | None = None,
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY,
  ) -> None:
    super().__init__(scope, id)

    # Get the stack name for resource prefixing
    stack_name = Stack.of(self).stack_name

    aliases = [domain_name]
    if include_www:
      aliases.append(f"www.{domain_name}")

    self.dns = DnsRecords(
      self,
      f"{stack_name}-dns",
      domain_name=domain_name,
      existing_hosted_zone_id=hosted_zone_id,
      resource_prefix=stack_name,
    )

    self.certificate = DnsValidatedCertificate(
      self,
      f"{stack_name}-certificate",
      domain_name=domain_name,
      hosted_zone=self.dns.hosted_zone,
      aliases=aliases,
    )

    self.bucket = StorageBucket(
      self,
      f"{stack_name}-bucket",
      bucket_name=bucket_name,
      removal_policy=removal_policy,
    )

    self.edge_function = IndexRewriteFunction(
      self,
      f"{stack_name}-edge-function",
      resource_prefix=stack_name,
    )

    self.distribution = CloudFrontDistribution(
      self,
      f"{stack_name}-distribution",
      bucket=self.bucket.bucket,
      access_identity=self.bucket.access_identity,
      certificate=self.certificate.certificate,
      function_association=self.edge_function.association,
      domain_names=aliases,
    )

    self.content: SiteContent | None = None
    if build_dir is not None:
      self.content = SiteContent(
        self,
        f"{stack_name}-content",
        build_dir=build_dir,
        bucket=self.bucket.bucket,
        distribution=self.distribution.distribution,
        resource_prefix=stack_name,
      )

    # Alias records go last: the distribution address must already resolve
    self.alias_records = self.dns.create_alias_records(
      distribution=self.distribution.distribution,
      aliases=aliases,
      resource_prefix=stack_name,
    )
    if self.content is not None:
      for record in self.alias_records:
        record.node.add_dependency(self.content.deployment)

    # Outputs
    CfnOutput(
      self,
      "BucketName",
      value=self.bucket.bucket.bucket_name,
      description="S3 bucket name",
    )
    CfnOutput(
      self,
      "DistributionId",
      value=self.distribution.distribution.distribution_id,
      description="CloudFront distribution ID",
    )
    CfnOutput(
      self,
      "DistributionDomainName",
      value=self.distribution.distribution.distribution_domain_name,
      description="CloudFront distribution domain name",
    )
    CfnOutput(
      self,
      "HostedZoneId",
      value=self.dns.hosted_zone.hosted_zone_id,
      description="Route 53 hosted zone ID",
    )
