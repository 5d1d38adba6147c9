"""Provisioning steps for static website infrastructure."""

from .certificate import PendingCertificate, issue_certificate
from .deployment import INVALIDATION_PATHS, deploy_assets
from .distribution import build_distribution, error_responses
from .dns import bind_alias_record, resolve_zone
from .static_site import SiteOutputs, build_site_graph, provision_site
from .storage import create_access_identity, create_content_store

__all__ = [
  "INVALIDATION_PATHS",
  "PendingCertificate",
  "SiteOutputs",
  "bind_alias_record",
  "build_distribution",
  "build_site_graph",
  "create_access_identity",
  "create_content_store",
  "deploy_assets",
  "error_responses",
  "issue_certificate",
  "provision_site",
  "resolve_zone",
]
