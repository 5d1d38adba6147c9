#!/usr/bin/env python3
"""Provision a static site directly against AWS and print its outputs."""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sitegraph.components import provision_site
from sitegraph.config import Config, SiteConfig
from sitegraph.errors import ProvisioningError
from sitegraph.graph import RunContext
from sitegraph.providers.aws import AwsProvider


def load_site(args: argparse.Namespace) -> SiteConfig:
  """Build the site config from a YAML file or from flags."""
  if args.config:
    config = Config.from_yaml(Path(args.config))
    for site in config.sites:
      if args.site in (None, site.site_domain):
        return site
    raise ValueError(f"No site {args.site} in {args.config}")

  return SiteConfig(
    domain_name=args.domain_name or "",
    site_sub_domain=args.site_sub_domain or "",
    asset_source=args.asset_source or "",
    error_page=args.error_page,
    region=args.region,
  )


def main() -> None:
  """Main entry point."""
  parser = argparse.ArgumentParser(description="Provision a static website on AWS")
  parser.add_argument("--config", help="sites.yaml to read the site from")
  parser.add_argument("--site", help="Site domain to pick from --config")
  parser.add_argument("--domain-name", help="Existing hosted zone (e.g., example.com)")
  parser.add_argument("--site-sub-domain", help="Subdomain to serve (e.g., www)")
  parser.add_argument("--asset-source", help="Directory of built site assets")
  parser.add_argument(
    "--error-page",
    default="/error.html",
    help="Object served for 403/404 (default: /error.html)",
  )
  parser.add_argument(
    "--region",
    default="us-east-1",
    help="AWS region for the bucket (default: us-east-1)",
  )
  parser.add_argument(
    "--parallel",
    type=int,
    default=1,
    help="Steps allowed to run concurrently (default: 1)",
  )
  parser.add_argument("--verbose", action="store_true", help="Debug logging")
  args = parser.parse_args()

  logging.basicConfig(
    level=logging.DEBUG if args.verbose else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
  )

  try:
    site = load_site(args)
    context = RunContext(site=site, provider=AwsProvider(region=site.region))
    outputs = provision_site(context, max_workers=args.parallel)
  except ProvisioningError as e:
    print(f"Provisioning failed at step {e.step}: {e}", file=sys.stderr)
    sys.exit(1)
  except ValueError as e:
    print(f"Error: {e}", file=sys.stderr)
    sys.exit(1)

  print(json.dumps(asdict(outputs), indent=2))


if __name__ == "__main__":
  main()
