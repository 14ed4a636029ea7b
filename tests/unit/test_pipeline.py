"""Tests for the end-to-end provisioning run."""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from infrastructure.config import SiteConfig
from infrastructure.provisioning import (
  ProvisioningClients,
  ProvisioningState,
  Provisioner,
  ValidationFailed,
)
from infrastructure.provisioning.distribution import build_distribution_config
from infrastructure.provisioning.models import (
  AccessPrincipal,
  Certificate,
  CertificateStatus,
  EdgeFunction,
  OriginStore,
)
from infrastructure.provisioning.origin import OWNER_TAG
from infrastructure.routing import REWRITE_FUNCTION_CODE

CERT_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/abc"
FUNCTION_ARN = "arn:aws:cloudfront::123456789012:function/example-com-index-rewrite"
OWNER = "StaticSite-example-com"


def _missing(code: str) -> ClientError:
  return ClientError({"Error": {"Code": code, "Message": code}}, "Operation")


def _cert_detail(status: str = "ISSUED") -> dict[str, Any]:
  return {
    "Certificate": {
      "CertificateArn": CERT_ARN,
      "DomainName": "example.com",
      "SubjectAlternativeNames": ["example.com"],
      "Status": status,
      "NotAfter": datetime(2099, 1, 1, tzinfo=UTC),
      "DomainValidationOptions": [
        {
          "DomainName": "example.com",
          "ResourceRecord": {"Name": "_x.example.com.", "Type": "CNAME", "Value": "_y."},
        }
      ],
    }
  }


def _paginators(pages: dict[str, list[dict[str, Any]]]) -> Any:
  def get_paginator(name: str) -> MagicMock:
    paginator = MagicMock()
    paginator.paginate.return_value = pages[name]
    return paginator

  return get_paginator


def _fresh_account() -> MagicMock:
  """Clients for an account where nothing but the hosted zone exists."""
  aws = MagicMock()
  aws.route53.list_hosted_zones_by_name.return_value = {
    "HostedZones": [{"Id": "/hostedzone/Z1", "Name": "example.com."}]
  }

  aws.acm.get_paginator.side_effect = _paginators(
    {"list_certificates": [{"CertificateSummaryList": []}]}
  )
  aws.acm.request_certificate.return_value = {"CertificateArn": CERT_ARN}
  aws.acm.describe_certificate.return_value = _cert_detail()

  aws.s3.head_bucket.side_effect = _missing("404")
  aws.s3.get_paginator.side_effect = _paginators({"list_objects_v2": [{"Contents": []}]})

  aws.cloudfront.get_paginator.side_effect = _paginators(
    {
      "list_cloud_front_origin_access_identities": [
        {"CloudFrontOriginAccessIdentityList": {"Items": []}}
      ],
      "list_distributions": [{"DistributionList": {"Items": []}}],
    }
  )
  aws.cloudfront.create_cloud_front_origin_access_identity.return_value = {
    "CloudFrontOriginAccessIdentity": {"Id": "EOAI", "S3CanonicalUserId": "canon"}
  }
  aws.cloudfront.get_function.side_effect = _missing("NoSuchFunctionExists")
  aws.cloudfront.describe_function.side_effect = _missing("NoSuchFunctionExists")
  aws.cloudfront.create_function.return_value = {"ETag": "F1"}
  aws.cloudfront.publish_function.return_value = {
    "FunctionSummary": {"FunctionMetadata": {"FunctionARN": FUNCTION_ARN}}
  }
  aws.cloudfront.create_distribution.return_value = {"Distribution": {"Id": "D1"}}
  aws.cloudfront.get_distribution.return_value = {
    "Distribution": {"Id": "D1", "DomainName": "d111.cloudfront.net", "Status": "Deployed"}
  }
  aws.cloudfront.create_invalidation.return_value = {"Invalidation": {"Id": "I1"}}
  return aws


def _provisioned_account(build_dir: Path) -> MagicMock:
  """Clients for an account where a previous run already finished."""
  aws = _fresh_account()
  aws.acm.get_paginator.side_effect = _paginators(
    {
      "list_certificates": [
        {"CertificateSummaryList": [{"DomainName": "example.com", "CertificateArn": CERT_ARN}]}
      ]
    }
  )

  aws.s3.head_bucket.side_effect = None
  aws.s3.get_bucket_tagging.return_value = {"TagSet": [{"Key": OWNER_TAG, "Value": OWNER}]}

  aws.cloudfront.get_function.side_effect = None
  aws.cloudfront.get_function.return_value = {
    "FunctionCode": MagicMock(read=lambda: REWRITE_FUNCTION_CODE.encode("utf-8"))
  }
  aws.cloudfront.describe_function.side_effect = None
  aws.cloudfront.describe_function.return_value = {
    "FunctionSummary": {"FunctionMetadata": {"FunctionARN": FUNCTION_ARN}}
  }

  current = build_distribution_config(
    caller_reference=OWNER,
    origin=OriginStore(bucket_name="example-com-origin", region="us-east-1"),
    principal=AccessPrincipal(identity_id="EOAI", canonical_user_id="canon"),
    certificate=Certificate(CERT_ARN, "example.com", CertificateStatus.ISSUED),
    edge_function=EdgeFunction(name="example-com-index-rewrite", arn=FUNCTION_ARN),
    aliases=["example.com"],
  )
  aws.cloudfront.get_paginator.side_effect = _paginators(
    {
      "list_cloud_front_origin_access_identities": [
        {
          "CloudFrontOriginAccessIdentityList": {
            "Items": [{"Id": "EOAI", "S3CanonicalUserId": "canon", "Comment": OWNER}]
          }
        }
      ],
      "list_distributions": [
        {
          "DistributionList": {
            "Items": [{"Id": "D1", "Aliases": {"Quantity": 1, "Items": ["example.com"]}}]
          }
        }
      ],
    }
  )
  aws.cloudfront.get_distribution_config.return_value = {
    "ETag": "ETAG1",
    "DistributionConfig": current,
  }
  return aws


def _clients(aws: MagicMock) -> ProvisioningClients:
  return ProvisioningClients(
    route53=aws.route53,
    acm=aws.acm,
    s3=aws.s3,
    cloudfront=aws.cloudfront,
  )


def _call_index(aws: MagicMock, name: str, *, last: bool = False) -> int:
  indexes = [i for i, c in enumerate(aws.mock_calls) if c[0] == name]
  assert indexes, f"{name} was never called"
  return indexes[-1] if last else indexes[0]


@pytest.fixture
def site(build_dir: Path) -> SiteConfig:
  return SiteConfig(domain="example.com", build_dir=build_dir, poll_interval_seconds=1)


class TestProvisioner:
  """Tests for Provisioner.run."""

  def test_full_run_reaches_dns_bound(self, site: SiteConfig, clock: Any) -> None:
    aws = _fresh_account()
    states: list[ProvisioningState] = []

    report = Provisioner(
      site,
      _clients(aws),
      on_transition=lambda state, _: states.append(state),
      sleep=clock.sleep,
      clock=clock,
    ).run()

    assert states == [
      ProvisioningState.ZONE_RESOLVED,
      ProvisioningState.CERT_ISSUED,
      ProvisioningState.ORIGIN_READY,
      ProvisioningState.FUNCTION_READY,
      ProvisioningState.DISTRIBUTION_ACTIVE,
      ProvisioningState.CONTENT_PUBLISHED,
      ProvisioningState.DNS_BOUND,
    ]
    assert report.succeeded
    assert report.distribution is not None
    assert report.distribution.domain_name == "d111.cloudfront.net"
    assert report.publish_result is not None
    assert report.publish_result.invalidation_id == "I1"
    assert [r.record_type for r in report.dns_records] == ["A", "AAAA"]
    assert report.warnings == []

  def test_stage_ordering(self, site: SiteConfig, clock: Any) -> None:
    """DNS is bound after the distribution deploys; invalidation after it exists."""
    aws = _fresh_account()

    Provisioner(site, _clients(aws), sleep=clock.sleep, clock=clock).run()

    alias_calls = [
      i
      for i, c in enumerate(aws.mock_calls)
      if c[0] == "route53.change_resource_record_sets"
      and "AliasTarget" in c[2]["ChangeBatch"]["Changes"][0]["ResourceRecordSet"]
    ]
    assert alias_calls
    assert min(alias_calls) > _call_index(aws, "cloudfront.get_distribution", last=True)
    assert _call_index(aws, "cloudfront.create_invalidation") > _call_index(
      aws, "cloudfront.create_distribution"
    )
    assert _call_index(aws, "cloudfront.create_distribution") > _call_index(
      aws, "cloudfront.publish_function"
    )
    assert _call_index(aws, "s3.put_public_access_block") < _call_index(
      aws, "cloudfront.create_distribution"
    )

  def test_rerun_is_idempotent(self, site: SiteConfig, build_dir: Path, clock: Any) -> None:
    """A second run against a provisioned site creates nothing new."""
    aws = _provisioned_account(build_dir)

    report = Provisioner(site, _clients(aws), sleep=clock.sleep, clock=clock).run()

    assert report.succeeded
    aws.acm.request_certificate.assert_not_called()
    aws.s3.create_bucket.assert_not_called()
    aws.cloudfront.create_cloud_front_origin_access_identity.assert_not_called()
    aws.cloudfront.create_function.assert_not_called()
    aws.cloudfront.publish_function.assert_not_called()
    aws.cloudfront.create_distribution.assert_not_called()
    aws.cloudfront.update_distribution.assert_not_called()

  def test_failure_halts_remaining_stages(self, site: SiteConfig, clock: Any) -> None:
    aws = _fresh_account()
    failed = _cert_detail("FAILED")
    failed["Certificate"]["FailureReason"] = "CAA_ERROR"
    aws.acm.describe_certificate.return_value = failed
    states: list[ProvisioningState] = []

    with pytest.raises(ValidationFailed):
      Provisioner(
        site,
        _clients(aws),
        on_transition=lambda state, _: states.append(state),
        sleep=clock.sleep,
        clock=clock,
      ).run()

    assert states == [ProvisioningState.ZONE_RESOLVED]
    aws.s3.create_bucket.assert_not_called()
    aws.cloudfront.create_distribution.assert_not_called()

  def test_invalidation_failure_is_surfaced_not_fatal(self, site: SiteConfig, clock: Any) -> None:
    aws = _fresh_account()
    aws.cloudfront.create_invalidation.side_effect = _missing("TooManyInvalidationsInProgress")

    report = Provisioner(site, _clients(aws), sleep=clock.sleep, clock=clock).run()

    assert report.succeeded
    assert len(report.warnings) == 1
    assert "Invalidation" in report.warnings[0]
    assert report.publish_result is not None
    assert report.publish_result.invalidation_id is None

  def test_configured_zone_id_skips_lookup(self, build_dir: Path, clock: Any) -> None:
    site = SiteConfig(domain="example.com", build_dir=build_dir, hosted_zone_id="Z1")
    aws = _fresh_account()
    aws.route53.get_hosted_zone.return_value = {
      "HostedZone": {"Id": "/hostedzone/Z1", "Name": "example.com."}
    }

    report = Provisioner(site, _clients(aws), sleep=clock.sleep, clock=clock).run()

    assert report.zone is not None
    assert report.zone.zone_id == "Z1"
    aws.route53.list_hosted_zones_by_name.assert_not_called()

  def test_clients_from_session(self) -> None:
    session = MagicMock()

    ProvisioningClients.from_session(session, "eu-west-1")

    session.client.assert_any_call("acm", region_name="us-east-1")
    session.client.assert_any_call("s3", region_name="eu-west-1")
