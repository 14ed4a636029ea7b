"""CloudFront distribution in front of the private origin store."""

import hashlib
import json
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from botocore.exceptions import ClientError

from infrastructure.routing import ERROR_FALLBACK_RULES, ROOT_DOCUMENT, ErrorFallbackRule

from .errors import CertificateNotIssued, ResourceConflict, StageTimeout
from .models import (
  AccessPrincipal,
  Certificate,
  CertificateStatus,
  Distribution,
  EdgeFunction,
  OriginStore,
)
from .waiters import wait_until

logger = logging.getLogger(__name__)

# AWS managed "CachingOptimized" cache policy
CACHING_OPTIMIZED_POLICY_ID = "658327ea-f89d-4fab-a63d-7e88639e58f6"
ORIGIN_ID = "origin-store"


def _fingerprint(config: dict[str, Any]) -> str:
  payload = json.dumps(config, sort_keys=True).encode("utf-8")
  return hashlib.sha256(payload).hexdigest()[:16]


def build_distribution_config(
  *,
  caller_reference: str,
  origin: OriginStore,
  principal: AccessPrincipal,
  certificate: Certificate,
  edge_function: EdgeFunction,
  aliases: Sequence[str],
  error_rules: Sequence[ErrorFallbackRule] = ERROR_FALLBACK_RULES,
) -> dict[str, Any]:
  """DistributionConfig for one HTTPS-only default behavior.

  The comment carries a fingerprint of the rest of the config so a re-run
  can tell whether an update is needed.
  """
  config: dict[str, Any] = {
    "CallerReference": caller_reference,
    "Enabled": True,
    "Aliases": {"Quantity": len(aliases), "Items": list(aliases)},
    "DefaultRootObject": ROOT_DOCUMENT,
    "Origins": {
      "Quantity": 1,
      "Items": [
        {
          "Id": ORIGIN_ID,
          "DomainName": origin.regional_domain_name,
          "OriginPath": "",
          "S3OriginConfig": {
            "OriginAccessIdentity": (
              f"origin-access-identity/cloudfront/{principal.identity_id}"
            ),
          },
        }
      ],
    },
    "DefaultCacheBehavior": {
      "TargetOriginId": ORIGIN_ID,
      "ViewerProtocolPolicy": "redirect-to-https",
      "AllowedMethods": {
        "Quantity": 2,
        "Items": ["GET", "HEAD"],
        "CachedMethods": {"Quantity": 2, "Items": ["GET", "HEAD"]},
      },
      "Compress": True,
      "CachePolicyId": CACHING_OPTIMIZED_POLICY_ID,
      "FunctionAssociations": {
        "Quantity": 1,
        "Items": [{"FunctionARN": edge_function.arn, "EventType": "viewer-request"}],
      },
    },
    "CustomErrorResponses": {
      "Quantity": len(error_rules),
      "Items": [
        {
          "ErrorCode": rule.error_code,
          "ResponsePagePath": rule.response_page_path,
          "ResponseCode": str(rule.response_code),
          "ErrorCachingMinTTL": rule.cache_seconds,
        }
        for rule in error_rules
      ],
    },
    "ViewerCertificate": {
      "ACMCertificateArn": certificate.arn,
      "SSLSupportMethod": "sni-only",
      "MinimumProtocolVersion": "TLSv1.2_2021",
    },
    "HttpVersion": "http2",
    "IsIPV6Enabled": True,
    "PriceClass": "PriceClass_All",
  }
  config["Comment"] = f"Static site {aliases[0]} [{_fingerprint(config)}]"
  return config


def find_distribution(cloudfront: Any, aliases: Sequence[str]) -> dict[str, Any] | None:
  """Summary of the distribution already answering for any of ``aliases``."""
  wanted = set(aliases)
  paginator = cloudfront.get_paginator("list_distributions")
  for page in paginator.paginate():
    for summary in page.get("DistributionList", {}).get("Items", []):
      if wanted & set(summary.get("Aliases", {}).get("Items", [])):
        return summary
  return None


def _check_certificate(certificate: Certificate, aliases: Sequence[str]) -> None:
  if certificate.status is not CertificateStatus.ISSUED:
    raise CertificateNotIssued(
      f"Certificate {certificate.arn} is {certificate.status.value}, not issued"
    )
  uncovered = [alias for alias in aliases if not certificate.covers(alias)]
  if uncovered:
    raise CertificateNotIssued(
      f"Certificate {certificate.arn} does not cover {', '.join(uncovered)}"
    )


def provision_distribution(
  cloudfront: Any,
  origin: OriginStore,
  principal: AccessPrincipal,
  certificate: Certificate,
  edge_function: EdgeFunction,
  aliases: Sequence[str],
  *,
  owner: str,
  error_rules: Sequence[ErrorFallbackRule] = ERROR_FALLBACK_RULES,
  timeout: float = 30 * 60,
  poll_interval: float = 15,
  sleep: Callable[[float], None] = time.sleep,
  clock: Callable[[], float] = time.monotonic,
) -> Distribution:
  """Create or update the distribution and wait until it is deployed.

  Refuses to touch CloudFront unless ``certificate`` is issued and covers
  every alias.
  """
  _check_certificate(certificate, aliases)

  config = build_distribution_config(
    caller_reference=owner,
    origin=origin,
    principal=principal,
    certificate=certificate,
    edge_function=edge_function,
    aliases=aliases,
    error_rules=error_rules,
  )

  existing = find_distribution(cloudfront, aliases)
  if existing is None:
    try:
      created = cloudfront.create_distribution(DistributionConfig=config)
    except ClientError as e:
      if e.response.get("Error", {}).get("Code") == "CNAMEAlreadyExists":
        raise ResourceConflict(
          f"Aliases {', '.join(aliases)} belong to another distribution",
          stage="distribution",
        ) from e
      raise
    distribution_id = created["Distribution"]["Id"]
    logger.info(f"Created distribution {distribution_id}")
  else:
    distribution_id = existing["Id"]
    current = cloudfront.get_distribution_config(Id=distribution_id)
    current_config = current["DistributionConfig"]
    if current_config.get("CallerReference") != owner:
      raise ResourceConflict(
        f"Distribution {distribution_id} serving {', '.join(aliases)} is not owned by {owner}",
        stage="distribution",
      )
    if current_config.get("Comment") == config["Comment"]:
      logger.info(f"Distribution {distribution_id} is up to date")
    else:
      cloudfront.update_distribution(
        Id=distribution_id,
        IfMatch=current["ETag"],
        DistributionConfig={**current_config, **config},
      )
      logger.info(f"Updated distribution {distribution_id}")

  def deployed() -> Distribution | None:
    detail = cloudfront.get_distribution(Id=distribution_id)["Distribution"]
    if detail["Status"] != "Deployed":
      return None
    return Distribution(
      distribution_id=detail["Id"],
      domain_name=detail["DomainName"],
      status=detail["Status"],
      aliases=tuple(aliases),
    )

  logger.info(f"Waiting for distribution {distribution_id} to deploy...")
  return wait_until(
    deployed,
    description=f"distribution {distribution_id} to deploy",
    timeout=timeout,
    poll_interval=poll_interval,
    error=StageTimeout,
    stage="distribution",
    sleep=sleep,
    clock=clock,
  )
