"""TLS certificate issuance with DNS validation."""

import logging
import threading

from ..errors import ProvisioningError
from ..graph import RunContext
from ..providers.base import CloudProvider
from ..resources import Certificate, HostedZone

logger = logging.getLogger(__name__)


class PendingCertificate:
  """A certificate that has been requested but may not be issued yet.

  ``result()`` is the point where dependents suspend until the certificate
  authority confirms the DNS validation. The outcome is cached, so the
  provider is polled at most once per run.
  """

  def __init__(self, provider: CloudProvider, arn: str, domain_name: str) -> None:
    self.arn = arn
    self.domain_name = domain_name
    self._provider = provider
    self._lock = threading.Lock()
    self._certificate: Certificate | None = None
    self._error: ProvisioningError | None = None

  def result(self) -> Certificate:
    with self._lock:
      if self._error is not None:
        raise self._error
      if self._certificate is None:
        logger.info("Waiting for certificate %s to be issued", self.arn)
        try:
          self._certificate = self._provider.wait_for_certificate(self.arn)
        except ProvisioningError as e:
          self._error = e
          raise
        logger.info("Certificate %s is %s", self.arn, self._certificate.status.value)
      return self._certificate

  def done(self) -> bool:
    return self._certificate is not None or self._error is not None


def issue_certificate(
  context: RunContext, *, site_domain: str, zone: HostedZone
) -> PendingCertificate:
  """Request a certificate for ``site_domain`` validated through ``zone``."""
  arn = context.provider.request_certificate(site_domain, zone)
  logger.info("Requested certificate %s for %s", arn, site_domain)
  return PendingCertificate(context.provider, arn, site_domain)
