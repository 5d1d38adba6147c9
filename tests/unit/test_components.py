"""Tests for the individual provisioning steps."""

import pytest
from conftest import FakeCloudProvider

from sitegraph.components import (
  PendingCertificate,
  bind_alias_record,
  build_distribution,
  create_access_identity,
  create_content_store,
  deploy_assets,
  error_responses,
  issue_certificate,
  resolve_zone,
)
from sitegraph.errors import (
  AliasConflict,
  DistributionCreateFailed,
  InvalidationFailed,
  NameCollision,
  UploadFailed,
  ValidationTimeout,
  ZoneNotFound,
)
from sitegraph.graph import RunContext
from sitegraph.resources import (
  AccessIdentity,
  Bucket,
  Certificate,
  CertificateStatus,
  Distribution,
  HostedZone,
  RecordSet,
)

ZONE = HostedZone(zone_id="Z1", name="example.com")
IDENTITY = AccessIdentity(identity_id="E1IDENTITY")
BUCKET = Bucket(name="www.example.com")
ISSUED = Certificate(
  arn="arn:aws:acm:us-east-1:123456789012:certificate/abc",
  domain_name="www.example.com",
  status=CertificateStatus.ISSUED,
)


class TestResolveZone:
  """Tests for hosted zone lookup."""

  def test_returns_matching_zone(self, context: RunContext) -> None:
    assert resolve_zone(context, "example.com") == ZONE

  def test_unknown_zone_fails(self, context: RunContext) -> None:
    with pytest.raises(ZoneNotFound) as excinfo:
      resolve_zone(context, "missing.org")

    assert excinfo.value.resource == "missing.org"
    assert excinfo.value.component == "DomainResolver"

  def test_empty_domain_fails_without_lookup(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    with pytest.raises(ZoneNotFound):
      resolve_zone(context, "")

    assert provider.calls == []


class TestContentStore:
  """Tests for the access identity and bucket steps."""

  def test_bucket_named_after_site_and_readable_by_identity(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    identity = create_access_identity(context)
    bucket = create_content_store(context, site_domain="www.example.com", identity=identity)

    assert bucket.name == "www.example.com"
    assert provider.grants == {"www.example.com": [identity.identity_id]}
    assert provider.calls == ["create_access_identity", "create_bucket", "grant_read"]

  def test_name_collision_is_not_retried(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    provider.foreign_buckets.add("www.example.com")

    with pytest.raises(NameCollision):
      create_content_store(context, site_domain="www.example.com", identity=IDENTITY)

    assert provider.calls == ["create_bucket"]


class TestCertificate:
  """Tests for certificate issuance and the pending handle."""

  def test_issue_returns_pending_handle(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    pending = issue_certificate(context, site_domain="www.example.com", zone=ZONE)

    assert isinstance(pending, PendingCertificate)
    assert pending.domain_name == "www.example.com"
    assert not pending.done()
    assert provider.calls == ["request_certificate"]

  def test_result_waits_once(self, context: RunContext, provider: FakeCloudProvider) -> None:
    pending = issue_certificate(context, site_domain="www.example.com", zone=ZONE)

    first = pending.result()
    second = pending.result()

    assert first is second
    assert first.issued
    assert provider.calls.count("wait_for_certificate") == 1
    assert pending.done()

  def test_validation_timeout_is_remembered(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    provider.fail["wait_for_certificate"] = ValidationTimeout("arn", "too slow")
    pending = issue_certificate(context, site_domain="www.example.com", zone=ZONE)

    for _ in range(2):
      with pytest.raises(ValidationTimeout):
        pending.result()

    assert provider.calls.count("wait_for_certificate") == 1


class TestDistribution:
  """Tests for the distribution builder."""

  def test_error_pages_map_403_and_404_to_404(self) -> None:
    responses = {r.error_code: r for r in error_responses("/error.html")}

    assert set(responses) == {403, 404}
    for response in responses.values():
      assert response.response_code == 404
      assert response.response_page_path == "/error.html"

  def test_builds_from_issued_certificate(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    distribution = build_distribution(
      context,
      bucket=BUCKET,
      identity=IDENTITY,
      certificate=ISSUED,
      site_domain="www.example.com",
      error_page="/error.html",
    )

    config = provider.distributions[distribution.distribution_id]
    assert config.aliases == ("www.example.com",)
    assert config.certificate_arn == ISSUED.arn
    assert config.origin_bucket == BUCKET
    assert config.origin_identity == IDENTITY
    assert config.minimum_protocol_version == "TLSv1.1_2016"

  def test_refuses_unissued_certificate(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    pending = Certificate(
      arn=ISSUED.arn,
      domain_name="www.example.com",
      status=CertificateStatus.PENDING_VALIDATION,
    )

    with pytest.raises(DistributionCreateFailed, match="PENDING_VALIDATION"):
      build_distribution(
        context,
        bucket=BUCKET,
        identity=IDENTITY,
        certificate=pending,
        site_domain="www.example.com",
        error_page="/error.html",
      )

    assert provider.calls == []

  def test_refuses_certificate_for_other_domain(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    other = Certificate(arn=ISSUED.arn, domain_name="example.com", status=CertificateStatus.ISSUED)

    with pytest.raises(DistributionCreateFailed):
      build_distribution(
        context,
        bucket=BUCKET,
        identity=IDENTITY,
        certificate=other,
        site_domain="www.example.com",
        error_page="/error.html",
      )

    assert provider.calls == []


class TestAliasRecord:
  """Tests for alias record binding."""

  def test_targets_distribution_domain(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    distribution = Distribution(distribution_id="EDIST1", domain_name="d1.cloudfront.net")

    record = bind_alias_record(
      context, distribution=distribution, zone=ZONE, site_domain="www.example.com"
    )

    assert record.name == "www.example.com"
    assert record.target == "d1.cloudfront.net"
    assert record.zone_id == "Z1"

  def test_rerun_with_same_distribution_writes_nothing(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    distribution = Distribution(distribution_id="EDIST1", domain_name="d1.cloudfront.net")

    for _ in range(2):
      bind_alias_record(
        context, distribution=distribution, zone=ZONE, site_domain="www.example.com"
      )

    assert provider.calls.count("upsert_alias_record") == 1

  def test_new_distribution_overwrites_target(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    old = Distribution(distribution_id="EDIST1", domain_name="d1.cloudfront.net")
    new = Distribution(distribution_id="EDIST2", domain_name="d2.cloudfront.net")

    bind_alias_record(context, distribution=old, zone=ZONE, site_domain="www.example.com")
    record = bind_alias_record(
      context, distribution=new, zone=ZONE, site_domain="www.example.com"
    )

    assert record.target == "d2.cloudfront.net"
    assert provider.records[("Z1", "www.example.com")].alias_target == "d2.cloudfront.net"
    assert provider.calls.count("upsert_alias_record") == 2

  def test_plain_record_conflicts(self, context: RunContext, provider: FakeCloudProvider) -> None:
    provider.records[("Z1", "www.example.com")] = RecordSet(name="www.example.com", type="CNAME")
    distribution = Distribution(distribution_id="EDIST1", domain_name="d1.cloudfront.net")

    with pytest.raises(AliasConflict):
      bind_alias_record(
        context, distribution=distribution, zone=ZONE, site_domain="www.example.com"
      )

    assert "upsert_alias_record" not in provider.calls

  def test_unrelated_record_types_are_ignored(
    self, context: RunContext, provider: FakeCloudProvider
  ) -> None:
    provider.records[("Z1", "www.example.com")] = RecordSet(name="www.example.com", type="TXT")
    distribution = Distribution(distribution_id="EDIST1", domain_name="d1.cloudfront.net")

    bind_alias_record(context, distribution=distribution, zone=ZONE, site_domain="www.example.com")

    assert provider.calls.count("upsert_alias_record") == 1


class TestDeployment:
  """Tests for uploading assets and invalidating the cache."""

  @pytest.fixture
  def distribution(self) -> Distribution:
    return Distribution(distribution_id="EDIST1", domain_name="d1.cloudfront.net")

  def test_invalidation_follows_upload(
    self, context: RunContext, provider: FakeCloudProvider, distribution: Distribution
  ) -> None:
    provider.buckets[BUCKET.name] = {}

    deployment = deploy_assets(
      context, source="app/build", bucket=BUCKET, distribution=distribution
    )

    assert provider.calls == ["upload_assets", "create_invalidation"]
    assert provider.invalidations == [("EDIST1", ["/*"], "upload-1")]
    assert deployment.invalidation_paths == ("/*",)
    assert deployment.destination_bucket == BUCKET.name
    assert deployment.uploaded_keys == ("index.html",)
    assert deployment.invalidation_id == "I1"

  def test_upload_failure_skips_invalidation(
    self, context: RunContext, provider: FakeCloudProvider, distribution: Distribution
  ) -> None:
    provider.fail["upload_assets"] = UploadFailed(BUCKET.name, "network down")

    with pytest.raises(UploadFailed):
      deploy_assets(context, source="app/build", bucket=BUCKET, distribution=distribution)

    assert provider.calls == ["upload_assets"]
    assert provider.invalidations == []

  def test_invalidation_failure_is_reported(
    self, context: RunContext, provider: FakeCloudProvider, distribution: Distribution
  ) -> None:
    provider.buckets[BUCKET.name] = {}
    provider.fail["create_invalidation"] = InvalidationFailed("EDIST1", "throttled")

    with pytest.raises(InvalidationFailed) as excinfo:
      deploy_assets(context, source="app/build", bucket=BUCKET, distribution=distribution)

    assert excinfo.value.component == "Deployer"
    assert excinfo.value.resource == "EDIST1"
