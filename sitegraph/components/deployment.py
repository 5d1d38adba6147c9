"""Upload site assets and invalidate the CDN cache."""

import logging

from ..graph import RunContext
from ..resources import Bucket, Deployment, Distribution

logger = logging.getLogger(__name__)

INVALIDATION_PATHS = ("/*",)


def deploy_assets(
  context: RunContext,
  *,
  source: str,
  bucket: Bucket,
  distribution: Distribution,
) -> Deployment:
  """Upload ``source`` into ``bucket``, then invalidate every cached path.

  A failed upload raises before the invalidation is requested.
  """
  provider = context.provider
  upload = provider.upload_assets(source, bucket)
  logger.info("Uploaded %d objects from %s to %s", len(upload.keys), source, bucket.name)

  invalidation_id = provider.create_invalidation(
    distribution.distribution_id, list(INVALIDATION_PATHS), upload=upload
  )
  logger.info(
    "Invalidation %s issued on %s", invalidation_id, distribution.distribution_id
  )
  return Deployment(
    source=source,
    destination_bucket=bucket.name,
    distribution_id=distribution.distribution_id,
    invalidation_paths=INVALIDATION_PATHS,
    uploaded_keys=upload.keys,
    invalidation_id=invalidation_id,
  )
