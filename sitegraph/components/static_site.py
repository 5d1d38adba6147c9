"""The complete static website graph.

Data edges::

  zone            -> certificate, alias_record
  access_identity -> bucket, distribution
  bucket          -> distribution, deployment
  certificate     -> distribution
  distribution    -> alias_record, deployment

Ordering-only edges: zone -> access_identity, bucket. Every resource-creating
step runs after the zone is resolved, so a missing zone aborts the run before
anything is created.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..graph import ProvisioningGraph, RunContext, RunResult, Step
from .certificate import PendingCertificate, issue_certificate
from .deployment import deploy_assets
from .distribution import build_distribution
from .dns import bind_alias_record, resolve_zone
from .storage import create_access_identity, create_content_store


@dataclass(frozen=True)
class SiteOutputs:
  """Observable results of a successful run."""

  site_url: str
  bucket_name: str
  certificate_arn: str
  distribution_id: str
  distribution_domain_name: str


def _zone(context: RunContext, inputs: Mapping[str, Any]) -> Any:
  return resolve_zone(context, context.site.domain_name)


def _access_identity(context: RunContext, inputs: Mapping[str, Any]) -> Any:
  return create_access_identity(context)


def _bucket(context: RunContext, inputs: Mapping[str, Any]) -> Any:
  return create_content_store(
    context, site_domain=context.site.site_domain, identity=inputs["access_identity"]
  )


def _certificate(context: RunContext, inputs: Mapping[str, Any]) -> Any:
  return issue_certificate(context, site_domain=context.site.site_domain, zone=inputs["zone"])


def _distribution(context: RunContext, inputs: Mapping[str, Any]) -> Any:
  pending: PendingCertificate = inputs["certificate"]
  # Suspends here until DNS validation completes
  certificate = pending.result()
  return build_distribution(
    context,
    bucket=inputs["bucket"],
    identity=inputs["access_identity"],
    certificate=certificate,
    site_domain=context.site.site_domain,
    error_page=context.site.error_page,
  )


def _alias_record(context: RunContext, inputs: Mapping[str, Any]) -> Any:
  return bind_alias_record(
    context,
    distribution=inputs["distribution"],
    zone=inputs["zone"],
    site_domain=context.site.site_domain,
  )


def _deployment(context: RunContext, inputs: Mapping[str, Any]) -> Any:
  return deploy_assets(
    context,
    source=context.site.asset_source,
    bucket=inputs["bucket"],
    distribution=inputs["distribution"],
  )


def build_site_graph() -> ProvisioningGraph:
  """Declare the provisioning steps of one static site and their edges."""
  return ProvisioningGraph(
    [
      Step("zone", "DomainResolver", _zone),
      Step("access_identity", "AccessIdentity", _access_identity, after=("zone",)),
      Step(
        "bucket",
        "ContentStore",
        _bucket,
        requires=("access_identity",),
        after=("zone",),
      ),
      Step("certificate", "CertificateIssuer", _certificate, requires=("zone",)),
      Step(
        "distribution",
        "DistributionBuilder",
        _distribution,
        requires=("bucket", "access_identity", "certificate"),
      ),
      Step(
        "alias_record",
        "AliasRecordBinder",
        _alias_record,
        requires=("distribution", "zone"),
      ),
      Step("deployment", "Deployer", _deployment, requires=("bucket", "distribution")),
    ]
  )


def site_outputs(context: RunContext, result: RunResult) -> SiteOutputs:
  pending: PendingCertificate = result["certificate"]
  return SiteOutputs(
    site_url=context.site.site_url,
    bucket_name=result["bucket"].name,
    certificate_arn=pending.arn,
    distribution_id=result["distribution"].distribution_id,
    distribution_domain_name=result["distribution"].domain_name,
  )


def provision_site(context: RunContext, max_workers: int = 1) -> SiteOutputs:
  """Evaluate the site graph and return its outputs."""
  result = build_site_graph().evaluate(context, max_workers=max_workers)
  return site_outputs(context, result)
