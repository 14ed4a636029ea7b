"""Identifiers passed between provisioning stages."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ProvisioningState(Enum):
  """Progress of a provisioning run; each state needs the previous one."""

  PENDING = "pending"
  ZONE_RESOLVED = "zone_resolved"
  CERT_ISSUED = "cert_issued"
  ORIGIN_READY = "origin_ready"
  FUNCTION_READY = "function_ready"
  DISTRIBUTION_ACTIVE = "distribution_active"
  CONTENT_PUBLISHED = "content_published"
  DNS_BOUND = "dns_bound"


class CertificateStatus(Enum):
  PENDING_VALIDATION = "pending-validation"
  ISSUED = "issued"
  FAILED = "failed"

  @classmethod
  def from_acm(cls, status: str) -> "CertificateStatus":
    """Collapse ACM's status vocabulary into ours."""
    if status == "ISSUED":
      return cls.ISSUED
    if status == "PENDING_VALIDATION":
      return cls.PENDING_VALIDATION
    return cls.FAILED


@dataclass(frozen=True)
class HostedZone:
  zone_id: str
  name: str

  def covers(self, domain: str) -> bool:
    """Whether ``domain`` is the zone apex or lives beneath it."""
    return domain == self.name or domain.endswith(f".{self.name}")


@dataclass(frozen=True)
class Certificate:
  arn: str
  domain_name: str
  status: CertificateStatus
  subject_alternative_names: tuple[str, ...] = ()
  not_after: datetime | None = None
  validation_method: str = "DNS"

  def covers(self, hostname: str) -> bool:
    """Whether the certificate names include ``hostname``."""
    for name in (self.domain_name, *self.subject_alternative_names):
      if name == hostname:
        return True
      if name.startswith("*.") and hostname.count(".") == name.count("."):
        if hostname.split(".", 1)[1] == name[2:]:
          return True
    return False


@dataclass(frozen=True)
class AccessPrincipal:
  """CloudFront origin access identity."""

  identity_id: str
  canonical_user_id: str

  @property
  def iam_arn(self) -> str:
    return (
      "arn:aws:iam::cloudfront:user/CloudFront Origin Access Identity "
      f"{self.identity_id}"
    )


@dataclass(frozen=True)
class OriginStore:
  bucket_name: str
  region: str

  @property
  def regional_domain_name(self) -> str:
    return f"{self.bucket_name}.s3.{self.region}.amazonaws.com"


@dataclass(frozen=True)
class EdgeFunction:
  name: str
  arn: str
  stage: str = "LIVE"


@dataclass(frozen=True)
class Distribution:
  distribution_id: str
  domain_name: str
  status: str
  aliases: tuple[str, ...] = ()

  @property
  def is_active(self) -> bool:
    return self.status == "Deployed"


@dataclass(frozen=True)
class DnsAliasRecord:
  name: str
  record_type: str
  target: str
  zone_id: str


@dataclass
class PublishResult:
  uploaded: list[str] = field(default_factory=list)
  deleted: list[str] = field(default_factory=list)
  unchanged: list[str] = field(default_factory=list)
  invalidation_id: str | None = None


@dataclass
class ProvisioningReport:
  """Everything a run produced, up to the state it reached."""

  domain: str
  state: ProvisioningState = ProvisioningState.PENDING
  zone: HostedZone | None = None
  certificate: Certificate | None = None
  origin: OriginStore | None = None
  principal: AccessPrincipal | None = None
  edge_function: EdgeFunction | None = None
  distribution: Distribution | None = None
  publish_result: PublishResult | None = None
  dns_records: list[DnsAliasRecord] = field(default_factory=list)
  warnings: list[str] = field(default_factory=list)

  @property
  def succeeded(self) -> bool:
    return self.state is ProvisioningState.DNS_BOUND
