"""Tests for hosted zone resolution."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from infrastructure.provisioning.errors import ZoneNotFound
from infrastructure.provisioning.models import HostedZone
from infrastructure.provisioning.zone import get_zone, resolve_zone


def _zones_by_name(zones: list[dict]) -> MagicMock:
  route53 = MagicMock()

  def list_hosted_zones_by_name(DNSName: str, MaxItems: str) -> dict:
    # Route 53 returns zones sorted from the requested name onwards
    return {"HostedZones": [z for z in zones if z["Name"].rstrip(".") >= DNSName]}

  route53.list_hosted_zones_by_name.side_effect = list_hosted_zones_by_name
  return route53


class TestResolveZone:
  """Tests for resolve_zone."""

  def test_finds_apex_zone(self) -> None:
    route53 = _zones_by_name([{"Id": "/hostedzone/Z1", "Name": "example.com."}])

    zone = resolve_zone(route53, "example.com")

    assert zone == HostedZone(zone_id="Z1", name="example.com")

  def test_walks_up_to_parent_zone(self) -> None:
    route53 = _zones_by_name([{"Id": "/hostedzone/Z1", "Name": "example.com."}])

    zone = resolve_zone(route53, "blog.example.com")

    assert zone.name == "example.com"
    assert route53.list_hosted_zones_by_name.call_count == 2

  def test_skips_private_zones(self) -> None:
    route53 = _zones_by_name(
      [
        {"Id": "/hostedzone/ZPRIV", "Name": "example.com.", "Config": {"PrivateZone": True}},
        {"Id": "/hostedzone/ZPUB", "Name": "example.com.", "Config": {"PrivateZone": False}},
      ]
    )

    assert resolve_zone(route53, "example.com").zone_id == "ZPUB"

  def test_missing_zone(self) -> None:
    route53 = _zones_by_name([{"Id": "/hostedzone/Z1", "Name": "other.org."}])

    with pytest.raises(ZoneNotFound) as exc_info:
      resolve_zone(route53, "example.com")
    assert exc_info.value.stage == "zone"

  def test_never_creates_zone(self) -> None:
    route53 = _zones_by_name([])

    with pytest.raises(ZoneNotFound):
      resolve_zone(route53, "example.com")
    route53.create_hosted_zone.assert_not_called()


class TestGetZone:
  """Tests for get_zone."""

  def test_reads_zone_by_id(self) -> None:
    route53 = MagicMock()
    route53.get_hosted_zone.return_value = {
      "HostedZone": {"Id": "/hostedzone/Z1", "Name": "example.com."}
    }

    assert get_zone(route53, "Z1") == HostedZone(zone_id="Z1", name="example.com")

  def test_unknown_zone_id(self) -> None:
    route53 = MagicMock()
    route53.get_hosted_zone.side_effect = ClientError(
      {"Error": {"Code": "NoSuchHostedZone", "Message": "Not found"}},
      "GetHostedZone",
    )

    with pytest.raises(ZoneNotFound):
      get_zone(route53, "Z404")


class TestHostedZoneCovers:
  def test_covers_apex_and_children(self) -> None:
    zone = HostedZone(zone_id="Z1", name="example.com")

    assert zone.covers("example.com")
    assert zone.covers("www.example.com")
    assert not zone.covers("badexample.com")
    assert not zone.covers("example.org")
