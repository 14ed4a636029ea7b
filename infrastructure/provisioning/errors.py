"""Exceptions raised by provisioning stages."""


class ProvisioningError(Exception):
  """Base exception for provisioning failures."""

  stage = "provisioning"

  def __init__(self, message: str, *, stage: str | None = None) -> None:
    super().__init__(message)
    if stage is not None:
      self.stage = stage


class ZoneNotFound(ProvisioningError):
  """No public hosted zone is authoritative for the domain."""

  stage = "zone"


class StageTimeout(ProvisioningError):
  """A stage did not reach its target state before the deadline."""


class ValidationTimeout(StageTimeout):
  """Certificate is still pending validation at the deadline."""

  stage = "certificate"


class ValidationFailed(ProvisioningError):
  """Certificate authority rejected the validation."""

  stage = "certificate"


class ResourceConflict(ProvisioningError):
  """A resource with our name exists but belongs to someone else."""


class CertificateNotIssued(ProvisioningError):
  """Distribution was asked to bind a certificate that cannot serve it."""

  stage = "distribution"


class DistributionNotActive(ProvisioningError):
  """Distribution is missing or not yet deployed."""


class PublishIOFailure(ProvisioningError):
  """Uploading to or deleting from the origin store failed partway."""

  stage = "publish"


class InvalidationFailure(ProvisioningError):
  """Content was published but the cache purge request failed."""

  stage = "publish"

  def __init__(self, message: str, *, result: object = None) -> None:
    super().__init__(message)
    self.result = result
