"""Hosted zone lookup and alias record binding."""

import logging

from ..errors import AliasConflict, ZoneNotFound
from ..graph import RunContext
from ..resources import AliasRecord, Distribution, HostedZone

logger = logging.getLogger(__name__)

# Record types that cannot share a name with an alias A record
_BLOCKING_TYPES = {"A", "CNAME"}


def resolve_zone(context: RunContext, domain_name: str) -> HostedZone:
  """Look up the existing zone for ``domain_name``."""
  if not domain_name:
    raise ZoneNotFound(domain_name, "Domain name must not be empty")
  zone = context.provider.find_hosted_zone(domain_name)
  if zone.name.rstrip(".") != domain_name.rstrip("."):
    raise ZoneNotFound(domain_name, f"Lookup returned a different zone: {zone.name}")
  logger.info("Resolved zone %s (%s)", zone.name, zone.zone_id)
  return zone


def bind_alias_record(
  context: RunContext,
  *,
  distribution: Distribution,
  zone: HostedZone,
  site_domain: str,
) -> AliasRecord:
  """Point ``site_domain`` at the distribution.

  Re-running against the same distribution writes nothing. A different target
  is overwritten. A plain (non-alias) record at the name is a conflict.
  """
  provider = context.provider
  for record in provider.find_records(zone, site_domain):
    if record.type not in _BLOCKING_TYPES:
      continue
    if not record.is_alias:
      raise AliasConflict(site_domain, f"A {record.type} record already occupies the name")
    if record.type == "A" and _same_name(record.alias_target, distribution.domain_name):
      logger.info("Alias %s already targets %s", site_domain, distribution.domain_name)
      return AliasRecord(name=site_domain, target=distribution.domain_name, zone_id=zone.zone_id)

  return provider.upsert_alias_record(zone, site_domain, distribution.domain_name)


def _same_name(left: str | None, right: str) -> bool:
  return (left or "").rstrip(".").lower() == right.rstrip(".").lower()
