"""Configuration loader for static site deployments."""

import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from aws_cdk import RemovalPolicy

_LABEL_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")


class InvalidDomainName(ValueError):
  """Domain name is not a usable fully qualified domain name."""


def normalize_domain(domain: str) -> str:
  """Lower-case and validate a fully qualified domain name."""
  name = domain.strip().lower().rstrip(".")
  if not name or len(name) > 253:
    raise InvalidDomainName(f"Invalid domain name: {domain!r}")

  labels = name.split(".")
  if len(labels) < 2:
    raise InvalidDomainName(f"Domain name must have at least two labels: {domain!r}")
  for label in labels:
    if not _LABEL_RE.match(label):
      raise InvalidDomainName(f"Invalid label {label!r} in domain name {domain!r}")
  return name


@dataclass
class SiteConfig:
  """Configuration for a single static site."""

  domain: str
  build_dir: Path = Path("dist")
  region: str = "us-east-1"
  account: str | None = None
  include_www: bool = False
  bucket_name: str = ""
  removal_policy: RemovalPolicy = RemovalPolicy.DESTROY
  hosted_zone_id: str | None = None
  validation_timeout_minutes: int = 45
  deployment_timeout_minutes: int = 30
  poll_interval_seconds: int = 15

  def __post_init__(self) -> None:
    self.domain = normalize_domain(self.domain)
    self.build_dir = Path(self.build_dir)
    if not self.bucket_name:
      self.bucket_name = f"{self.slug}-origin"

  @property
  def slug(self) -> str:
    """Domain with dots replaced, usable in resource names."""
    return self.domain.replace(".", "-")

  @property
  def stack_name(self) -> str:
    """Stack name, also used as the owner tag of provisioned resources."""
    return f"StaticSite-{self.slug}"

  @property
  def aliases(self) -> list[str]:
    """Every hostname the distribution answers for."""
    names = [self.domain]
    if self.include_www:
      names.append(f"www.{self.domain}")
    return names


@dataclass
class Config:
  """Multi-site configuration."""

  sites: list[SiteConfig] = field(default_factory=list)

  def get_site(self, domain: str) -> SiteConfig:
    """Return the site configured for ``domain``."""
    wanted = normalize_domain(domain)
    for site in self.sites:
      if site.domain == wanted:
        return site
    raise KeyError(f"No site configured for {wanted}")

  @classmethod
  def from_yaml(cls, path: Path | str = "sites.yaml") -> "Config":
    """Load configuration from YAML file."""
    with open(path) as f:
      data = yaml.safe_load(f) or {}

    defaults = data.get("defaults", {})
    sites: list[SiteConfig] = []

    for site_data in data.get("sites", []):
      # Merge defaults with site-specific config
      merged = {**defaults, **site_data}

      # Convert removal_policy string to enum
      removal_policy_str = merged.pop("removal_policy", "destroy")
      removal_policy = {
        "retain": RemovalPolicy.RETAIN,
        "destroy": RemovalPolicy.DESTROY,
      }.get(removal_policy_str.lower(), RemovalPolicy.DESTROY)

      account = merged.get("account")
      sites.append(
        SiteConfig(
          domain=merged["domain"],
          build_dir=Path(merged.get("build_dir", "dist")),
          region=merged.get("region", "us-east-1"),
          account=str(account) if account is not None else None,
          include_www=merged.get("include_www", False),
          bucket_name=merged.get("bucket_name", ""),
          removal_policy=removal_policy,
          hosted_zone_id=merged.get("hosted_zone_id"),
          validation_timeout_minutes=merged.get("validation_timeout_minutes", 45),
          deployment_timeout_minutes=merged.get("deployment_timeout_minutes", 30),
          poll_interval_seconds=merged.get("poll_interval_seconds", 15),
        )
      )

    return cls(sites=sites)
