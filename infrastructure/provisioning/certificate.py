"""Request and validate the ACM certificate served by CloudFront."""

import logging
import re
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from .errors import ValidationFailed, ValidationTimeout, ZoneNotFound
from .models import Certificate, CertificateStatus, HostedZone
from .waiters import wait_until

logger = logging.getLogger(__name__)

FAILED_STATUSES = {"FAILED", "VALIDATION_TIMED_OUT", "REVOKED", "EXPIRED", "INACTIVE"}
VALIDATION_RECORD_TTL = 300


def _to_certificate(detail: dict[str, Any]) -> Certificate:
  names = [n for n in detail.get("SubjectAlternativeNames", []) if n != detail["DomainName"]]
  return Certificate(
    arn=detail["CertificateArn"],
    domain_name=detail["DomainName"],
    status=CertificateStatus.from_acm(detail["Status"]),
    subject_alternative_names=tuple(names),
    not_after=detail.get("NotAfter"),
  )


def _idempotency_token(domain: str) -> str:
  # ACM accepts up to 32 word characters
  return re.sub(r"\W", "", domain)[:32]


def _has_failed_request(acm: Any, domain: str) -> bool:
  """Whether ACM still lists a failed request for ``domain``."""
  paginator = acm.get_paginator("list_certificates")
  for page in paginator.paginate(CertificateStatuses=["FAILED", "VALIDATION_TIMED_OUT"]):
    for summary in page.get("CertificateSummaryList", []):
      if summary["DomainName"] == domain and summary.get("Status") in FAILED_STATUSES:
        return True
  return False


def find_certificate(acm: Any, domain: str, names: Sequence[str]) -> Certificate | None:
  """Return a reusable certificate for ``domain``, preferring issued ones.

  A certificate qualifies when it covers every name in ``names`` and is
  either issued and unexpired or still pending validation.
  """
  pending: Certificate | None = None
  now = datetime.now(UTC)

  paginator = acm.get_paginator("list_certificates")
  for page in paginator.paginate(CertificateStatuses=["ISSUED", "PENDING_VALIDATION"]):
    for summary in page.get("CertificateSummaryList", []):
      if summary["DomainName"] != domain:
        continue
      detail = acm.describe_certificate(CertificateArn=summary["CertificateArn"])
      cert = _to_certificate(detail["Certificate"])
      if not all(cert.covers(name) for name in names):
        continue
      if cert.status is CertificateStatus.ISSUED:
        if cert.not_after is None or cert.not_after > now:
          return cert
      elif cert.status is CertificateStatus.PENDING_VALIDATION and pending is None:
        pending = cert
  return pending


def upsert_validation_records(
  route53: Any,
  zone: HostedZone,
  records: list[dict[str, str]],
) -> None:
  """Write the DNS validation CNAMEs ACM asked for into the zone."""
  unique = {record["Name"]: record for record in records}
  route53.change_resource_record_sets(
    HostedZoneId=zone.zone_id,
    ChangeBatch={
      "Comment": "ACM certificate validation",
      "Changes": [
        {
          "Action": "UPSERT",
          "ResourceRecordSet": {
            "Name": record["Name"],
            "Type": record["Type"],
            "TTL": VALIDATION_RECORD_TTL,
            "ResourceRecords": [{"Value": record["Value"]}],
          },
        }
        for record in unique.values()
      ],
    },
  )
  logger.info(f"Upserted {len(unique)} validation record(s) in zone {zone.name}")


def issue_certificate(
  acm: Any,
  route53: Any,
  domain: str,
  zone: HostedZone,
  *,
  alternative_names: Sequence[str] = (),
  timeout: float = 45 * 60,
  poll_interval: float = 15,
  sleep: Callable[[float], None] = time.sleep,
  clock: Callable[[], float] = time.monotonic,
) -> Certificate:
  """Return an issued certificate for ``domain``, requesting one if needed.

  Blocks until ACM reports the certificate as issued. Raises
  ``ValidationFailed`` when ACM gives up and ``ValidationTimeout`` when
  ``timeout`` seconds pass first.
  """
  deadline = clock() + timeout
  names = [domain, *[n for n in alternative_names if n != domain]]
  for name in names:
    if not zone.covers(name):
      raise ZoneNotFound(f"Hosted zone {zone.name} cannot validate {name}", stage="certificate")

  existing = find_certificate(acm, domain, names)
  if existing is not None and existing.status is CertificateStatus.ISSUED:
    logger.info(f"Reusing issued certificate {existing.arn}")
    return existing

  if existing is not None:
    arn = existing.arn
    logger.info(f"Resuming validation of pending certificate {arn}")
  else:
    request: dict[str, Any] = {"DomainName": domain, "ValidationMethod": "DNS"}
    # ACM answers a reused token with the old request for an hour, failed or not
    if _has_failed_request(acm, domain):
      logger.info(f"Previous request for {domain} failed, requesting a fresh certificate")
    else:
      request["IdempotencyToken"] = _idempotency_token(domain)
    if len(names) > 1:
      request["SubjectAlternativeNames"] = names
    arn = acm.request_certificate(**request)["CertificateArn"]
    logger.info(f"Requested certificate {arn} for {', '.join(names)}")

  def validation_records() -> list[dict[str, str]] | None:
    detail = acm.describe_certificate(CertificateArn=arn)["Certificate"]
    options = detail.get("DomainValidationOptions", [])
    if not options or any("ResourceRecord" not in option for option in options):
      return None
    return [option["ResourceRecord"] for option in options]

  records = wait_until(
    validation_records,
    description=f"validation records for {arn}",
    timeout=timeout,
    poll_interval=poll_interval,
    deadline=deadline,
    error=ValidationTimeout,
    sleep=sleep,
    clock=clock,
  )
  upsert_validation_records(route53, zone, records)

  def issued() -> Certificate | None:
    detail = acm.describe_certificate(CertificateArn=arn)["Certificate"]
    status = detail["Status"]
    if status == "ISSUED":
      return _to_certificate(detail)
    if status in FAILED_STATUSES:
      reason = detail.get("FailureReason", status)
      raise ValidationFailed(f"Certificate {arn} failed validation: {reason}")
    return None

  logger.info(f"Waiting for certificate {arn} to be issued...")
  certificate = wait_until(
    issued,
    description=f"certificate {arn} to be issued",
    timeout=timeout,
    poll_interval=poll_interval,
    deadline=deadline,
    error=ValidationTimeout,
    sleep=sleep,
    clock=clock,
  )
  logger.info(f"Certificate {arn} issued")
  return certificate
