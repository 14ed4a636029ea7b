"""Resolve the externally owned Route 53 hosted zone for a domain."""

import logging
from typing import Any

from botocore.exceptions import ClientError

from .errors import ZoneNotFound
from .models import HostedZone

logger = logging.getLogger(__name__)


def resolve_zone(route53: Any, domain: str) -> HostedZone:
  """Find the public hosted zone authoritative for ``domain``.

  Walks from the full name up through its parents (``app.example.com`` then
  ``example.com``). The zone is only read, never created.
  """
  labels = domain.split(".")
  for i in range(len(labels) - 1):
    candidate = ".".join(labels[i:])
    response = route53.list_hosted_zones_by_name(DNSName=candidate, MaxItems="10")
    for zone in response.get("HostedZones", []):
      zone_name = zone["Name"].rstrip(".")
      if zone_name != candidate:
        continue
      if zone.get("Config", {}).get("PrivateZone"):
        continue
      zone_id = zone["Id"].split("/")[-1]
      logger.info(f"Found hosted zone {zone_name} ({zone_id}) for {domain}")
      return HostedZone(zone_id=zone_id, name=zone_name)

  raise ZoneNotFound(
    f"No public hosted zone found for {domain}; delegate the domain to Route 53 first"
  )


def get_zone(route53: Any, zone_id: str) -> HostedZone:
  """Read a hosted zone configured by id instead of looking it up."""
  try:
    response = route53.get_hosted_zone(Id=zone_id)
  except ClientError as e:
    if e.response.get("Error", {}).get("Code") == "NoSuchHostedZone":
      raise ZoneNotFound(f"Hosted zone {zone_id} does not exist") from e
    raise
  zone = response["HostedZone"]
  return HostedZone(zone_id=zone["Id"].split("/")[-1], name=zone["Name"].rstrip("."))
