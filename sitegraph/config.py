"""Configuration loader for static site provisioning."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from aws_cdk import RemovalPolicy

REMOVAL_POLICIES = {
  "retain": RemovalPolicy.RETAIN,
  "destroy": RemovalPolicy.DESTROY,
  "snapshot": RemovalPolicy.SNAPSHOT,
}


@dataclass(frozen=True)
class SiteConfig:
  """Caller-supplied input for a single static site."""

  domain_name: str
  site_sub_domain: str
  asset_source: str
  error_page: str = "/error.html"
  region: str = "us-east-1"
  hosted_zone_id: str | None = None
  removal_policy: RemovalPolicy = RemovalPolicy.RETAIN

  def __post_init__(self) -> None:
    for name in ("domain_name", "site_sub_domain", "asset_source"):
      if not str(getattr(self, name) or "").strip():
        raise ValueError(f"{name} must be a non-empty string")
    if not self.error_page.startswith("/"):
      object.__setattr__(self, "error_page", f"/{self.error_page}")

  @property
  def site_domain(self) -> str:
    """Fully-qualified domain the site is served from."""
    return f"{self.site_sub_domain}.{self.domain_name}"

  @property
  def site_url(self) -> str:
    return f"https://{self.site_domain}"

  @property
  def stack_name(self) -> str:
    return f"StaticSite-{self.site_domain.replace('.', '-')}"


@dataclass
class Config:
  """Multi-site configuration."""

  sites: list[SiteConfig] = field(default_factory=list)

  @classmethod
  def from_yaml(cls, path: Path | str = "sites.yaml") -> "Config":
    """Load configuration from YAML file."""
    with open(path) as f:
      data = yaml.safe_load(f) or {}

    defaults = data.get("defaults", {})
    sites: list[SiteConfig] = []

    for site_data in data.get("sites", []):
      # Merge defaults with site-specific config
      merged = {**defaults, **site_data}
      sites.append(site_from_mapping(merged, base_dir=Path(path).parent))

    return cls(sites=sites)


def site_from_mapping(data: dict[str, Any], base_dir: Path | None = None) -> SiteConfig:
  """Build a SiteConfig from a merged YAML mapping."""
  removal_policy_str = str(data.get("removal_policy", "retain"))
  removal_policy = REMOVAL_POLICIES.get(removal_policy_str.lower(), RemovalPolicy.RETAIN)

  # Relative asset paths are resolved against the config file's directory
  asset_source = str(data.get("asset_source", ""))
  if asset_source and base_dir is not None and not Path(asset_source).is_absolute():
    asset_source = str(base_dir / asset_source)

  return SiteConfig(
    domain_name=data.get("domain_name", ""),
    site_sub_domain=data.get("site_sub_domain", ""),
    asset_source=asset_source,
    error_page=data.get("error_page", "/error.html"),
    region=data.get("region", "us-east-1"),
    hosted_zone_id=data.get("hosted_zone_id"),
    removal_policy=removal_policy,
  )
