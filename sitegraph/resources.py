"""Plain data structures passed between provisioning steps."""

from dataclasses import dataclass, field
from enum import Enum

# Hosted zone id shared by every CloudFront distribution for alias targets
CLOUDFRONT_HOSTED_ZONE_ID = "Z2FDTNDATAQYW2"

MINIMUM_PROTOCOL_VERSION = "TLSv1.1_2016"


class CertificateStatus(str, Enum):
  """Lifecycle states of a managed certificate that the core cares about."""

  PENDING_VALIDATION = "PENDING_VALIDATION"
  ISSUED = "ISSUED"
  FAILED = "FAILED"


@dataclass(frozen=True)
class HostedZone:
  """Reference to an existing DNS zone. Looked up, never created."""

  zone_id: str
  name: str


@dataclass(frozen=True)
class AccessIdentity:
  """Identity the CDN uses to read the private bucket."""

  identity_id: str
  s3_canonical_user_id: str = ""

  @property
  def principal_arn(self) -> str:
    return (
      "arn:aws:iam::cloudfront:user/CloudFront Origin Access Identity "
      f"{self.identity_id}"
    )


@dataclass(frozen=True)
class Bucket:
  name: str

  @property
  def arn(self) -> str:
    return f"arn:aws:s3:::{self.name}"


@dataclass(frozen=True)
class Certificate:
  arn: str
  domain_name: str
  status: CertificateStatus

  @property
  def issued(self) -> bool:
    return self.status == CertificateStatus.ISSUED


@dataclass(frozen=True)
class ErrorResponse:
  """Maps an origin error code to the status and page returned to viewers."""

  error_code: int
  response_code: int
  response_page_path: str


@dataclass(frozen=True)
class DistributionConfig:
  """Everything a provider needs to create a CDN distribution."""

  origin_bucket: Bucket
  origin_identity: AccessIdentity
  certificate_arn: str
  aliases: tuple[str, ...]
  error_responses: tuple[ErrorResponse, ...]
  minimum_protocol_version: str = MINIMUM_PROTOCOL_VERSION
  default_root_object: str = "index.html"
  comment: str = ""


@dataclass(frozen=True)
class Distribution:
  distribution_id: str
  domain_name: str


@dataclass(frozen=True)
class RecordSet:
  """A DNS record as reported by the provider."""

  name: str
  type: str
  alias_target: str | None = None

  @property
  def is_alias(self) -> bool:
    return self.alias_target is not None


@dataclass(frozen=True)
class AliasRecord:
  name: str
  target: str
  zone_id: str


@dataclass(frozen=True)
class UploadResult:
  """Proof that an upload into a bucket finished.

  Required by cache invalidation so it can only be requested after the upload.
  """

  bucket_name: str
  keys: tuple[str, ...] = ()
  upload_id: str = ""


@dataclass(frozen=True)
class Deployment:
  source: str
  destination_bucket: str
  distribution_id: str
  invalidation_paths: tuple[str, ...] = ("/*",)
  uploaded_keys: tuple[str, ...] = field(default=())
  invalidation_id: str = ""
