"""Pytest fixtures for provisioning graph and CDK stack tests."""

import threading

import aws_cdk as cdk
import pytest

from sitegraph.config import SiteConfig
from sitegraph.errors import NameCollision, ProvisioningError, ZoneNotFound
from sitegraph.graph import RunContext
from sitegraph.resources import (
  AccessIdentity,
  AliasRecord,
  Bucket,
  Certificate,
  CertificateStatus,
  Distribution,
  DistributionConfig,
  HostedZone,
  RecordSet,
  UploadResult,
)


class FakeCloudProvider:
  """In-memory cloud provider that records every call in order."""

  def __init__(self, zones: tuple[str, ...] = ("example.com",)) -> None:
    self.zones = {name: HostedZone(zone_id=f"Z{i + 1}", name=name) for i, name in enumerate(zones)}
    self.calls: list[str] = []
    self.fail: dict[str, ProvisioningError] = {}
    self.foreign_buckets: set[str] = set()
    self.certificate_status = CertificateStatus.ISSUED
    self.certificate_domain: str | None = None

    self.buckets: dict[str, dict[str, str]] = {}
    self.grants: dict[str, list[str]] = {}
    self.certificates: dict[str, str] = {}
    self.distributions: dict[str, DistributionConfig] = {}
    self.records: dict[tuple[str, str], RecordSet] = {}
    self.invalidations: list[tuple[str, list[str], str]] = []
    self._lock = threading.Lock()

  def _call(self, name: str) -> None:
    with self._lock:
      self.calls.append(name)
    if name in self.fail:
      raise self.fail[name]

  def find_hosted_zone(self, domain_name: str) -> HostedZone:
    self._call("find_hosted_zone")
    if domain_name not in self.zones:
      raise ZoneNotFound(domain_name, "No such zone")
    return self.zones[domain_name]

  def create_access_identity(self, comment: str) -> AccessIdentity:
    self._call("create_access_identity")
    return AccessIdentity(identity_id="E1IDENTITY", s3_canonical_user_id="canonical")

  def create_bucket(self, name: str) -> Bucket:
    self._call("create_bucket")
    if name in self.foreign_buckets:
      raise NameCollision(name, "Bucket name is taken by another owner")
    self.buckets.setdefault(name, {})
    return Bucket(name=name)

  def grant_read(self, bucket: Bucket, identity: AccessIdentity) -> None:
    self._call("grant_read")
    self.grants.setdefault(bucket.name, []).append(identity.identity_id)

  def request_certificate(self, domain_name: str, zone: HostedZone) -> str:
    self._call("request_certificate")
    arn = f"arn:aws:acm:us-east-1:123456789012:certificate/{domain_name}"
    self.certificates[arn] = domain_name
    return arn

  def wait_for_certificate(self, arn: str) -> Certificate:
    self._call("wait_for_certificate")
    return Certificate(
      arn=arn,
      domain_name=self.certificate_domain or self.certificates[arn],
      status=self.certificate_status,
    )

  def create_distribution(self, config: DistributionConfig) -> Distribution:
    self._call("create_distribution")
    distribution_id = f"EDIST{len(self.distributions) + 1}"
    self.distributions[distribution_id] = config
    return Distribution(
      distribution_id=distribution_id,
      domain_name=f"d{len(self.distributions)}.cloudfront.net",
    )

  def find_records(self, zone: HostedZone, name: str) -> list[RecordSet]:
    self._call("find_records")
    return [r for (zone_id, _), r in self.records.items() if zone_id == zone.zone_id and r.name == name]

  def upsert_alias_record(self, zone: HostedZone, name: str, target: str) -> AliasRecord:
    self._call("upsert_alias_record")
    self.records[(zone.zone_id, name)] = RecordSet(name=name, type="A", alias_target=target)
    return AliasRecord(name=name, target=target, zone_id=zone.zone_id)

  def upload_assets(self, source: str, bucket: Bucket) -> UploadResult:
    self._call("upload_assets")
    self.buckets[bucket.name]["index.html"] = source
    return UploadResult(bucket_name=bucket.name, keys=("index.html",), upload_id="upload-1")

  def create_invalidation(
    self, distribution_id: str, paths: list[str], *, upload: UploadResult
  ) -> str:
    self._call("create_invalidation")
    self.invalidations.append((distribution_id, paths, upload.upload_id))
    return f"I{len(self.invalidations)}"


@pytest.fixture
def app() -> cdk.App:
  """Create a CDK App for testing."""
  return cdk.App()


@pytest.fixture
def stack(app: cdk.App) -> cdk.Stack:
  """Create a CDK Stack for testing."""
  return cdk.Stack(app, "TestStack", env=cdk.Environment(region="us-east-1"))


@pytest.fixture
def site() -> SiteConfig:
  return SiteConfig(domain_name="example.com", site_sub_domain="www", asset_source="app/build")


@pytest.fixture
def provider() -> FakeCloudProvider:
  return FakeCloudProvider()


@pytest.fixture
def context(site: SiteConfig, provider: FakeCloudProvider) -> RunContext:
  return RunContext(site=site, provider=provider)


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
  """Fake credentials so boto3 never reaches a real account."""
  monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
  monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
  monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
  monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
  monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
