"""Route 53 hosted zone reference and alias records."""

from aws_cdk import aws_cloudfront as cloudfront
from aws_cdk import aws_route53 as route53
from aws_cdk import aws_route53_targets as targets
from constructs import Construct


class DnsRecords(Construct):
  """Borrowed Route 53 hosted zone and the alias records we own in it.

  The zone is never created here. It is either imported by id or looked up
  by domain name at synth time.
  """

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    domain_name: str,
    existing_hosted_zone_id: str | None = None,
    resource_prefix: str = "",
  ) -> None:
    super().__init__(scope, id)

    self.domain_name = domain_name
    self._resource_prefix = resource_prefix
    zone_id = f"{resource_prefix}-hosted-zone" if resource_prefix else "HostedZone"

    if existing_hosted_zone_id:
      self.hosted_zone = route53.HostedZone.from_hosted_zone_attributes(
        self,
        zone_id,
        hosted_zone_id=existing_hosted_zone_id,
        zone_name=domain_name,
      )
    else:
      self.hosted_zone = route53.HostedZone.from_lookup(
        self,
        zone_id,
        domain_name=domain_name,
      )

  def create_alias_records(
    self,
    distribution: cloudfront.IDistribution,
    aliases: list[str],
    resource_prefix: str = "",
  ) -> list[route53.RecordSet]:
    """Create A and AAAA records pointing each alias at the distribution."""
    prefix = resource_prefix or self._resource_prefix
    target = route53.RecordTarget.from_alias(targets.CloudFrontTarget(distribution))
    records: list[route53.RecordSet] = []

    for alias in aliases:
      label = "apex" if alias == self.domain_name else alias.split(".")[0]

      records.append(
        route53.ARecord(
          self,
          f"{prefix}-{label}-a-record" if prefix else f"{label.title()}ARecord",
          zone=self.hosted_zone,
          record_name=alias,
          target=target,
        )
      )
      records.append(
        route53.AaaaRecord(
          self,
          f"{prefix}-{label}-aaaa-record" if prefix else f"{label.title()}AAAARecord",
          zone=self.hosted_zone,
          record_name=alias,
          target=target,
        )
      )

    return records
