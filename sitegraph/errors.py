"""Error taxonomy for provisioning runs.

Every error is terminal for the current run. Each carries the component that
raised it and the resource name it concerns so a failed run can be diagnosed
and re-run.
"""


class GraphError(Exception):
  """Raised when a provisioning graph is malformed (duplicate, unknown or cyclic steps)."""


class ProvisioningError(Exception):
  """Base class for failures of a single provisioning step."""

  component = "Provisioning"

  def __init__(self, resource: str, message: str = "") -> None:
    self.resource = resource
    self.message = message or self.__class__.__name__
    self.step: str | None = None
    super().__init__(f"{self.component}: {self.message} ({resource})")


class ZoneNotFound(ProvisioningError):
  component = "DomainResolver"


class NameCollision(ProvisioningError):
  component = "ContentStore"


class ValidationTimeout(ProvisioningError):
  component = "CertificateIssuer"


class DistributionCreateFailed(ProvisioningError):
  component = "DistributionBuilder"


class AliasConflict(ProvisioningError):
  component = "AliasRecordBinder"


class UploadFailed(ProvisioningError):
  component = "Deployer"


class InvalidationFailed(ProvisioningError):
  component = "Deployer"
