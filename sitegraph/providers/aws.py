"""Cloud provider that provisions directly against AWS through boto3."""

import hashlib
import json
import logging
import mimetypes
import time
import uuid
from pathlib import Path
from typing import Any

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError, WaiterError

from ..errors import (
  AliasConflict,
  DistributionCreateFailed,
  InvalidationFailed,
  NameCollision,
  UploadFailed,
  ValidationTimeout,
  ZoneNotFound,
)
from ..resources import (
  CLOUDFRONT_HOSTED_ZONE_ID,
  AccessIdentity,
  AliasRecord,
  Bucket,
  Certificate,
  CertificateStatus,
  Distribution,
  DistributionConfig,
  HostedZone,
  RecordSet,
  UploadResult,
)

logger = logging.getLogger(__name__)

# CloudFront only accepts certificates issued in us-east-1
CERTIFICATE_REGION = "us-east-1"

# Managed "CachingOptimized" cache policy
CACHING_OPTIMIZED_POLICY_ID = "658327ea-f89d-4fab-a63d-7e88639e58f6"


def _error_code(error: ClientError) -> str:
  return str(error.response.get("Error", {}).get("Code", ""))


def _error_message(error: ClientError) -> str:
  return str(error.response.get("Error", {}).get("Message", "")) or str(error)


def _reference(value: str) -> str:
  """Stable caller reference so re-runs hit the same resource."""
  return hashlib.sha256(value.encode()).hexdigest()[:32]


def _certificate_status(value: str) -> CertificateStatus:
  if value == "ISSUED":
    return CertificateStatus.ISSUED
  if value == "PENDING_VALIDATION":
    return CertificateStatus.PENDING_VALIDATION
  return CertificateStatus.FAILED


class AwsProvider:
  """Provision static site resources with boto3 clients.

  Clients are attributes so callers and tests can substitute their own.
  """

  def __init__(
    self,
    *,
    region: str = "us-east-1",
    session: boto3.Session | None = None,
    validation_delay: int = 15,
    validation_attempts: int = 40,
    record_poll_delay: float = 5.0,
    record_poll_attempts: int = 12,
  ) -> None:
    session = session or boto3.Session(region_name=region)
    self.region = region
    self.route53 = session.client("route53")
    self.s3 = session.client("s3", region_name=region)
    self.acm = session.client("acm", region_name=CERTIFICATE_REGION)
    self.cloudfront = session.client("cloudfront")
    self.validation_delay = validation_delay
    self.validation_attempts = validation_attempts
    self.record_poll_delay = record_poll_delay
    self.record_poll_attempts = record_poll_attempts

  # DNS

  def find_hosted_zone(self, domain_name: str) -> HostedZone:
    name = domain_name.rstrip(".")
    try:
      response = self.route53.list_hosted_zones_by_name(DNSName=name)
    except ClientError as e:
      raise ZoneNotFound(name, _error_message(e)) from e

    for zone in response.get("HostedZones", []):
      if zone["Name"].rstrip(".") != name:
        continue
      if zone.get("Config", {}).get("PrivateZone", False):
        continue
      return HostedZone(zone_id=zone["Id"].split("/")[-1], name=name)
    raise ZoneNotFound(name, "No public hosted zone matches the domain")

  def find_records(self, zone: HostedZone, name: str) -> list[RecordSet]:
    wanted = name.rstrip(".").lower()
    response = self.route53.list_resource_record_sets(
      HostedZoneId=zone.zone_id,
      StartRecordName=name,
      MaxItems="10",
    )
    records: list[RecordSet] = []
    for record_set in response.get("ResourceRecordSets", []):
      if record_set["Name"].rstrip(".").lower() != wanted:
        continue
      alias = record_set.get("AliasTarget")
      records.append(
        RecordSet(
          name=wanted,
          type=record_set["Type"],
          alias_target=alias["DNSName"].rstrip(".") if alias else None,
        )
      )
    return records

  def upsert_alias_record(self, zone: HostedZone, name: str, target: str) -> AliasRecord:
    try:
      self.route53.change_resource_record_sets(
        HostedZoneId=zone.zone_id,
        ChangeBatch={
          "Comment": f"Alias for {name}",
          "Changes": [
            {
              "Action": "UPSERT",
              "ResourceRecordSet": {
                "Name": name,
                "Type": "A",
                "AliasTarget": {
                  "HostedZoneId": CLOUDFRONT_HOSTED_ZONE_ID,
                  "DNSName": target,
                  "EvaluateTargetHealth": False,
                },
              },
            }
          ],
        },
      )
    except ClientError as e:
      raise AliasConflict(name, _error_message(e)) from e
    logger.info("Upserted alias %s -> %s", name, target)
    return AliasRecord(name=name, target=target, zone_id=zone.zone_id)

  # Storage

  def create_access_identity(self, comment: str) -> AccessIdentity:
    response = self.cloudfront.create_cloud_front_origin_access_identity(
      CloudFrontOriginAccessIdentityConfig={
        "CallerReference": _reference(comment),
        "Comment": comment,
      }
    )
    identity = response["CloudFrontOriginAccessIdentity"]
    return AccessIdentity(
      identity_id=identity["Id"],
      s3_canonical_user_id=identity.get("S3CanonicalUserId", ""),
    )

  def create_bucket(self, name: str) -> Bucket:
    kwargs: dict[str, Any] = {"Bucket": name}
    if self.region != "us-east-1":
      kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}

    try:
      self.s3.create_bucket(**kwargs)
    except ClientError as e:
      code = _error_code(e)
      if code == "BucketAlreadyOwnedByYou":
        logger.info("Bucket %s already exists in this account", name)
      elif code == "BucketAlreadyExists":
        raise NameCollision(name, "Bucket name is taken by another owner") from e
      else:
        raise

    # No public access; the CDN reads through its access identity
    self.s3.put_public_access_block(
      Bucket=name,
      PublicAccessBlockConfiguration={
        "BlockPublicAcls": True,
        "IgnorePublicAcls": True,
        "BlockPublicPolicy": True,
        "RestrictPublicBuckets": True,
      },
    )
    return Bucket(name=name)

  def grant_read(self, bucket: Bucket, identity: AccessIdentity) -> None:
    policy = {
      "Version": "2012-10-17",
      "Statement": [
        {
          "Sid": "AllowCloudFrontRead",
          "Effect": "Allow",
          "Principal": {"AWS": identity.principal_arn},
          "Action": "s3:GetObject",
          "Resource": f"{bucket.arn}/*",
        }
      ],
    }
    self.s3.put_bucket_policy(Bucket=bucket.name, Policy=json.dumps(policy))

  # Certificates

  def request_certificate(self, domain_name: str, zone: HostedZone) -> str:
    try:
      response = self.acm.request_certificate(
        DomainName=domain_name,
        ValidationMethod="DNS",
        IdempotencyToken=_reference(domain_name),
      )
    except ClientError as e:
      raise ValidationTimeout(domain_name, f"Request failed: {_error_message(e)}") from e

    arn = str(response["CertificateArn"])
    record = self._validation_record(arn, domain_name)
    self.route53.change_resource_record_sets(
      HostedZoneId=zone.zone_id,
      ChangeBatch={
        "Comment": f"Certificate validation for {domain_name}",
        "Changes": [
          {
            "Action": "UPSERT",
            "ResourceRecordSet": {
              "Name": record["Name"],
              "Type": record["Type"],
              "TTL": 300,
              "ResourceRecords": [{"Value": record["Value"]}],
            },
          }
        ],
      },
    )
    return arn

  def _validation_record(self, arn: str, domain_name: str) -> dict[str, str]:
    # ACM fills in the validation record shortly after the request
    for _ in range(self.record_poll_attempts):
      detail = self.acm.describe_certificate(CertificateArn=arn)["Certificate"]
      for option in detail.get("DomainValidationOptions", []):
        if option.get("DomainName") == domain_name and "ResourceRecord" in option:
          return dict(option["ResourceRecord"])
      time.sleep(self.record_poll_delay)
    raise ValidationTimeout(domain_name, "Validation record was never published")

  def wait_for_certificate(self, arn: str) -> Certificate:
    waiter = self.acm.get_waiter("certificate_validated")
    try:
      waiter.wait(
        CertificateArn=arn,
        WaiterConfig={
          "Delay": self.validation_delay,
          "MaxAttempts": self.validation_attempts,
        },
      )
    except WaiterError as e:
      raise ValidationTimeout(arn, "DNS validation was not confirmed in time") from e

    detail = self.acm.describe_certificate(CertificateArn=arn)["Certificate"]
    return Certificate(
      arn=arn,
      domain_name=detail["DomainName"],
      status=_certificate_status(detail["Status"]),
    )

  # Distribution

  def create_distribution(self, config: DistributionConfig) -> Distribution:
    try:
      response = self.cloudfront.create_distribution(
        DistributionConfig=self.distribution_request(config)
      )
    except ClientError as e:
      raise DistributionCreateFailed(config.aliases[0], _error_message(e)) from e
    distribution = response["Distribution"]
    return Distribution(
      distribution_id=distribution["Id"],
      domain_name=distribution["DomainName"],
    )

  def distribution_request(self, config: DistributionConfig) -> dict[str, Any]:
    """Translate a DistributionConfig into a CloudFront API request body."""
    bucket_name = config.origin_bucket.name
    origin_id = f"S3-{bucket_name}"
    return {
      "CallerReference": _reference(",".join(config.aliases)),
      "Comment": config.comment,
      "Enabled": True,
      "HttpVersion": "http2",
      "Aliases": {"Quantity": len(config.aliases), "Items": list(config.aliases)},
      "DefaultRootObject": config.default_root_object,
      "Origins": {
        "Quantity": 1,
        "Items": [
          {
            "Id": origin_id,
            "DomainName": f"{bucket_name}.s3.{self.region}.amazonaws.com",
            "S3OriginConfig": {
              "OriginAccessIdentity": (
                f"origin-access-identity/cloudfront/{config.origin_identity.identity_id}"
              ),
            },
          }
        ],
      },
      "DefaultCacheBehavior": {
        "TargetOriginId": origin_id,
        "ViewerProtocolPolicy": "redirect-to-https",
        "CachePolicyId": CACHING_OPTIMIZED_POLICY_ID,
        "Compress": True,
        "AllowedMethods": {
          "Quantity": 2,
          "Items": ["GET", "HEAD"],
          "CachedMethods": {"Quantity": 2, "Items": ["GET", "HEAD"]},
        },
      },
      "CustomErrorResponses": {
        "Quantity": len(config.error_responses),
        "Items": [
          {
            "ErrorCode": response.error_code,
            "ResponsePagePath": response.response_page_path,
            "ResponseCode": str(response.response_code),
          }
          for response in config.error_responses
        ],
      },
      "ViewerCertificate": {
        "ACMCertificateArn": config.certificate_arn,
        "SSLSupportMethod": "sni-only",
        "MinimumProtocolVersion": config.minimum_protocol_version,
      },
    }

  # Deployment

  def upload_assets(self, source: str, bucket: Bucket) -> UploadResult:
    root = Path(source)
    if not root.is_dir():
      raise UploadFailed(bucket.name, f"Asset source {source} is not a directory")

    keys: list[str] = []
    for path in sorted(p for p in root.rglob("*") if p.is_file()):
      key = path.relative_to(root).as_posix()
      content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
      try:
        self.s3.upload_file(
          str(path), bucket.name, key, ExtraArgs={"ContentType": content_type}
        )
      except (ClientError, S3UploadFailedError) as e:
        raise UploadFailed(bucket.name, f"Could not upload {key}: {e}") from e
      keys.append(key)

    return UploadResult(bucket_name=bucket.name, keys=tuple(keys), upload_id=str(uuid.uuid4()))

  def create_invalidation(
    self, distribution_id: str, paths: list[str], *, upload: UploadResult
  ) -> str:
    logger.debug("Invalidating %s after upload %s", paths, upload.upload_id)
    try:
      response = self.cloudfront.create_invalidation(
        DistributionId=distribution_id,
        InvalidationBatch={
          "Paths": {"Quantity": len(paths), "Items": paths},
          "CallerReference": str(time.time()),
        },
      )
    except ClientError as e:
      raise InvalidationFailed(distribution_id, _error_message(e)) from e
    return str(response["Invalidation"]["Id"])
