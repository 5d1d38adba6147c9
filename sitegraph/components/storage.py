"""Private content bucket and the identity allowed to read it."""

import logging

from ..graph import RunContext
from ..resources import AccessIdentity, Bucket

logger = logging.getLogger(__name__)


def create_access_identity(context: RunContext) -> AccessIdentity:
  """Create the identity the CDN uses to read the bucket."""
  return context.provider.create_access_identity(
    f"Access from CloudFront to the {context.site.site_domain} website bucket"
  )


def create_content_store(
  context: RunContext, *, site_domain: str, identity: AccessIdentity
) -> Bucket:
  """Create the bucket named after the site and grant ``identity`` read access."""
  bucket = context.provider.create_bucket(site_domain)
  context.provider.grant_read(bucket, identity)
  logger.info("Bucket %s readable by identity %s", bucket.name, identity.identity_id)
  return bucket
