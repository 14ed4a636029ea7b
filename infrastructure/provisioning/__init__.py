"""Imperative boto3 provisioning of a static site, one stage at a time."""

from .errors import (
  CertificateNotIssued,
  DistributionNotActive,
  InvalidationFailure,
  ProvisioningError,
  PublishIOFailure,
  ResourceConflict,
  StageTimeout,
  ValidationFailed,
  ValidationTimeout,
  ZoneNotFound,
)
from .models import ProvisioningReport, ProvisioningState, PublishResult
from .pipeline import ProvisioningClients, Provisioner
from .publisher import publish

__all__ = [
  "CertificateNotIssued",
  "DistributionNotActive",
  "InvalidationFailure",
  "ProvisioningClients",
  "ProvisioningError",
  "ProvisioningReport",
  "ProvisioningState",
  "Provisioner",
  "PublishIOFailure",
  "PublishResult",
  "ResourceConflict",
  "StageTimeout",
  "ValidationFailed",
  "ValidationTimeout",
  "ZoneNotFound",
  "publish",
]
