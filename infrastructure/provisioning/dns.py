"""Point the domain at the distribution with Route 53 alias records."""

import logging
from typing import Any

from .errors import DistributionNotActive
from .models import Distribution, DnsAliasRecord, HostedZone

logger = logging.getLogger(__name__)

# Fixed hosted zone id for every CloudFront alias target
CLOUDFRONT_HOSTED_ZONE_ID = "Z2FDTNDATAQYW2"


def bind_dns(
  route53: Any,
  zone: HostedZone,
  domain: str,
  distribution: Distribution,
) -> list[DnsAliasRecord]:
  """Upsert A and AAAA alias records for ``domain`` in ``zone``."""
  if not distribution.is_active:
    raise DistributionNotActive(
      f"Distribution {distribution.distribution_id} is {distribution.status}, not Deployed",
      stage="dns",
    )

  records = [
    DnsAliasRecord(
      name=domain,
      record_type=record_type,
      target=distribution.domain_name,
      zone_id=zone.zone_id,
    )
    for record_type in ("A", "AAAA")
  ]
  route53.change_resource_record_sets(
    HostedZoneId=zone.zone_id,
    ChangeBatch={
      "Comment": f"Alias {domain} to {distribution.distribution_id}",
      "Changes": [
        {
          "Action": "UPSERT",
          "ResourceRecordSet": {
            "Name": record.name,
            "Type": record.record_type,
            "AliasTarget": {
              "HostedZoneId": CLOUDFRONT_HOSTED_ZONE_ID,
              "DNSName": record.target,
              "EvaluateTargetHealth": False,
            },
          },
        }
        for record in records
      ],
    },
  )
  logger.info(f"Bound {domain} to {distribution.domain_name}")
  return records
