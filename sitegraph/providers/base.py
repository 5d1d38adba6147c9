"""Interface to the cloud provisioning API."""

from typing import Protocol

from ..resources import (
  AccessIdentity,
  AliasRecord,
  Bucket,
  Certificate,
  Distribution,
  DistributionConfig,
  HostedZone,
  RecordSet,
  UploadResult,
)


class CloudProvider(Protocol):
  """Operations the provisioning core calls on the cloud platform.

  Implementations translate their native failures into the errors of
  ``sitegraph.errors``. None of them retry on behalf of the core.
  """

  def find_hosted_zone(self, domain_name: str) -> HostedZone:
    """Return the zone named exactly ``domain_name`` or raise ZoneNotFound."""
    ...

  def create_access_identity(self, comment: str) -> AccessIdentity: ...

  def create_bucket(self, name: str) -> Bucket:
    """Create a private bucket or raise NameCollision."""
    ...

  def grant_read(self, bucket: Bucket, identity: AccessIdentity) -> None:
    """Give ``identity`` read access to the objects of ``bucket`` and nobody else."""
    ...

  def request_certificate(self, domain_name: str, zone: HostedZone) -> str:
    """Request a DNS-validated certificate and return its ARN."""
    ...

  def wait_for_certificate(self, arn: str) -> Certificate:
    """Block until the certificate is issued or raise ValidationTimeout."""
    ...

  def create_distribution(self, config: DistributionConfig) -> Distribution: ...

  def find_records(self, zone: HostedZone, name: str) -> list[RecordSet]:
    """Return the records currently occupying ``name`` in ``zone``."""
    ...

  def upsert_alias_record(self, zone: HostedZone, name: str, target: str) -> AliasRecord: ...

  def upload_assets(self, source: str, bucket: Bucket) -> UploadResult: ...

  def create_invalidation(
    self, distribution_id: str, paths: list[str], *, upload: UploadResult
  ) -> str:
    """Invalidate ``paths`` once ``upload`` has completed and return the invalidation id."""
    ...
