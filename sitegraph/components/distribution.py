"""CDN distribution in front of the private content bucket."""

import logging

from ..errors import DistributionCreateFailed
from ..graph import RunContext
from ..resources import (
  AccessIdentity,
  Bucket,
  Certificate,
  Distribution,
  DistributionConfig,
  ErrorResponse,
)

logger = logging.getLogger(__name__)


def error_responses(error_page: str) -> tuple[ErrorResponse, ...]:
  """Present missing and forbidden objects alike as "not found"."""
  return (
    ErrorResponse(error_code=404, response_code=404, response_page_path=error_page),
    ErrorResponse(error_code=403, response_code=404, response_page_path=error_page),
  )


def distribution_config(
  *,
  bucket: Bucket,
  identity: AccessIdentity,
  certificate: Certificate,
  site_domain: str,
  error_page: str,
) -> DistributionConfig:
  return DistributionConfig(
    origin_bucket=bucket,
    origin_identity=identity,
    certificate_arn=certificate.arn,
    aliases=(site_domain,),
    error_responses=error_responses(error_page),
    comment=f"Static site {site_domain}",
  )


def build_distribution(
  context: RunContext,
  *,
  bucket: Bucket,
  identity: AccessIdentity,
  certificate: Certificate,
  site_domain: str,
  error_page: str,
) -> Distribution:
  """Create the distribution. ``certificate`` must already be issued."""
  if not certificate.issued:
    raise DistributionCreateFailed(
      site_domain, f"Certificate {certificate.arn} is {certificate.status.value}, not issued"
    )
  if certificate.domain_name != site_domain:
    raise DistributionCreateFailed(
      site_domain, f"Certificate {certificate.arn} covers {certificate.domain_name}"
    )

  config = distribution_config(
    bucket=bucket,
    identity=identity,
    certificate=certificate,
    site_domain=site_domain,
    error_page=error_page,
  )
  distribution = context.provider.create_distribution(config)
  logger.info(
    "Distribution %s serves %s at %s",
    distribution.distribution_id,
    site_domain,
    distribution.domain_name,
  )
  return distribution
