"""Run the provisioning stages for one site in dependency order."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import boto3

from infrastructure.config import SiteConfig

from .certificate import issue_certificate
from .distribution import provision_distribution
from .dns import bind_dns
from .edge_function import publish_edge_function
from .errors import InvalidationFailure
from .models import ProvisioningReport, ProvisioningState, PublishResult
from .origin import ensure_access_principal, grant_read, provision_origin
from .publisher import publish
from .zone import get_zone, resolve_zone

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[ProvisioningState, ProvisioningReport], None]


@dataclass
class ProvisioningClients:
  """boto3 clients for every service the stages touch."""

  route53: Any
  acm: Any
  s3: Any
  cloudfront: Any

  @classmethod
  def from_session(cls, session: boto3.Session, region: str) -> "ProvisioningClients":
    return cls(
      route53=session.client("route53"),
      # CloudFront only accepts certificates from us-east-1
      acm=session.client("acm", region_name="us-east-1"),
      s3=session.client("s3", region_name=region),
      cloudfront=session.client("cloudfront"),
    )


class Provisioner:
  """Provision and publish one static site.

  Stages run strictly in order, each consuming the identifiers the previous
  ones produced. The first failure is logged and re-raised as-is; resources
  created before it stay in place and a re-run adopts them.
  """

  def __init__(
    self,
    site: SiteConfig,
    clients: ProvisioningClients,
    *,
    on_transition: TransitionCallback | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
  ) -> None:
    self.site = site
    self.clients = clients
    self.on_transition = on_transition
    self._sleep = sleep
    self._clock = clock

  def _advance(self, report: ProvisioningReport, state: ProvisioningState) -> None:
    report.state = state
    logger.info(f"{self.site.domain}: {state.name}")
    if self.on_transition is not None:
      self.on_transition(state, report)

  def run(self, build_dir: Path | None = None) -> ProvisioningReport:
    """Provision every resource, publish ``build_dir`` and bind DNS."""
    report = ProvisioningReport(domain=self.site.domain)
    try:
      self._run(report, build_dir or self.site.build_dir)
    except Exception as e:
      logger.error(f"Provisioning {self.site.domain} stopped after {report.state.name}: {e}")
      raise
    return report

  def _run(self, report: ProvisioningReport, build_dir: Path) -> None:
    site = self.site
    clients = self.clients
    waits = {"poll_interval": site.poll_interval_seconds, "sleep": self._sleep, "clock": self._clock}

    if site.hosted_zone_id:
      report.zone = get_zone(clients.route53, site.hosted_zone_id)
    else:
      report.zone = resolve_zone(clients.route53, site.domain)
    self._advance(report, ProvisioningState.ZONE_RESOLVED)

    report.certificate = issue_certificate(
      clients.acm,
      clients.route53,
      site.domain,
      report.zone,
      alternative_names=site.aliases,
      timeout=site.validation_timeout_minutes * 60,
      **waits,
    )
    self._advance(report, ProvisioningState.CERT_ISSUED)

    report.origin = provision_origin(
      clients.s3, site.bucket_name, site.region, owner=site.stack_name
    )
    report.principal = ensure_access_principal(clients.cloudfront, site.stack_name)
    grant_read(clients.s3, report.origin, report.principal)
    self._advance(report, ProvisioningState.ORIGIN_READY)

    report.edge_function = publish_edge_function(
      clients.cloudfront, f"{site.slug}-index-rewrite"[:64]
    )
    self._advance(report, ProvisioningState.FUNCTION_READY)

    report.distribution = provision_distribution(
      clients.cloudfront,
      report.origin,
      report.principal,
      report.certificate,
      report.edge_function,
      site.aliases,
      owner=site.stack_name,
      timeout=site.deployment_timeout_minutes * 60,
      **waits,
    )
    self._advance(report, ProvisioningState.DISTRIBUTION_ACTIVE)

    try:
      report.publish_result = publish(
        clients.s3, clients.cloudfront, build_dir, report.origin, report.distribution
      )
    except InvalidationFailure as e:
      # Content is live in the bucket; stale edge copies expire on their own
      logger.warning(f"{site.domain}: {e}")
      report.warnings.append(str(e))
      report.publish_result = e.result if isinstance(e.result, PublishResult) else None
    self._advance(report, ProvisioningState.CONTENT_PUBLISHED)

    for alias in site.aliases:
      report.dns_records.extend(
        bind_dns(clients.route53, report.zone, alias, report.distribution)
      )
    self._advance(report, ProvisioningState.DNS_BOUND)
