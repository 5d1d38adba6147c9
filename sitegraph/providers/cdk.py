"""Cloud provider that declares the graph's resources as CDK constructs.

Evaluating the site graph with this provider synthesizes a CloudFormation
stack; CloudFormation then acts as the orchestrator. Identifiers handed back
to the graph are CDK tokens, and every construct is kept in a registry keyed
by that identifier so later steps can wire references between resources.
"""

import logging

from aws_cdk import RemovalPolicy
from aws_cdk import aws_certificatemanager as acm
from aws_cdk import aws_cloudfront as cloudfront
from aws_cdk import aws_cloudfront_origins as origins
from aws_cdk import aws_iam as iam
from aws_cdk import aws_route53 as route53
from aws_cdk import aws_route53_targets as targets
from aws_cdk import aws_s3 as s3
from aws_cdk import aws_s3_assets as s3_assets
from aws_cdk import aws_s3_deployment as s3_deploy
from aws_cdk import custom_resources as cr
from constructs import Construct

from ..errors import DistributionCreateFailed, InvalidationFailed, UploadFailed
from ..resources import (
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

SECURITY_POLICIES = {
  "TLSv1.1_2016": cloudfront.SecurityPolicyProtocol.TLS_V1_1_2016,
  "TLSv1.2_2018": cloudfront.SecurityPolicyProtocol.TLS_V1_2_2018,
  "TLSv1.2_2019": cloudfront.SecurityPolicyProtocol.TLS_V1_2_2019,
  "TLSv1.2_2021": cloudfront.SecurityPolicyProtocol.TLS_V1_2_2021,
}


class CdkProvider:
  """Declare static site resources inside ``scope``."""

  def __init__(
    self,
    scope: Construct,
    *,
    hosted_zone_id: str | None = None,
    removal_policy: RemovalPolicy = RemovalPolicy.RETAIN,
    prune: bool = False,
  ) -> None:
    self.scope = scope
    self.hosted_zone_id = hosted_zone_id
    self.removal_policy = removal_policy
    self.prune = prune

    self.zones: dict[str, route53.IHostedZone] = {}
    self.identities: dict[str, cloudfront.OriginAccessIdentity] = {}
    self.buckets: dict[str, s3.Bucket] = {}
    self.certificates: dict[str, tuple[acm.Certificate, str]] = {}
    self.distributions: dict[str, cloudfront.Distribution] = {}
    self.deployments: dict[str, s3_deploy.BucketDeployment] = {}
    self.assets: dict[str, s3_assets.Asset] = {}

  def find_hosted_zone(self, domain_name: str) -> HostedZone:
    # An unknown zone fails at synth time in the CDK CLI's context lookup
    if self.hosted_zone_id:
      zone = route53.HostedZone.from_hosted_zone_attributes(
        self.scope,
        "Zone",
        hosted_zone_id=self.hosted_zone_id,
        zone_name=domain_name,
      )
    else:
      zone = route53.HostedZone.from_lookup(self.scope, "Zone", domain_name=domain_name)
    self.zones[zone.hosted_zone_id] = zone
    return HostedZone(zone_id=zone.hosted_zone_id, name=domain_name)

  def create_access_identity(self, comment: str) -> AccessIdentity:
    identity = cloudfront.OriginAccessIdentity(
      self.scope,
      "OriginAccessIdentity",
      comment=comment,
    )
    self.identities[identity.origin_access_identity_id] = identity
    return AccessIdentity(
      identity_id=identity.origin_access_identity_id,
      s3_canonical_user_id=identity.cloud_front_origin_access_identity_s3_canonical_user_id,
    )

  def create_bucket(self, name: str) -> Bucket:
    bucket = s3.Bucket(
      self.scope,
      "SiteBucket",
      bucket_name=name,
      block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
      enforce_ssl=True,
      removal_policy=self.removal_policy,
      auto_delete_objects=self.removal_policy == RemovalPolicy.DESTROY,
    )
    self.buckets[name] = bucket
    return Bucket(name=name)

  def grant_read(self, bucket: Bucket, identity: AccessIdentity) -> None:
    self.buckets[bucket.name].grant_read(self.identities[identity.identity_id])

  def request_certificate(self, domain_name: str, zone: HostedZone) -> str:
    certificate = acm.Certificate(
      self.scope,
      "SiteCertificate",
      domain_name=domain_name,
      validation=acm.CertificateValidation.from_dns(self.zones[zone.zone_id]),
    )
    self.certificates[certificate.certificate_arn] = (certificate, domain_name)
    return certificate.certificate_arn

  def wait_for_certificate(self, arn: str) -> Certificate:
    # CloudFormation holds every resource referencing the ARN until issuance
    _, domain_name = self.certificates[arn]
    return Certificate(arn=arn, domain_name=domain_name, status=CertificateStatus.ISSUED)

  def create_distribution(self, config: DistributionConfig) -> Distribution:
    try:
      bucket = self.buckets[config.origin_bucket.name]
      identity = self.identities[config.origin_identity.identity_id]
      certificate, _ = self.certificates[config.certificate_arn]
      security_policy = SECURITY_POLICIES[config.minimum_protocol_version]
    except KeyError as e:
      raise DistributionCreateFailed(config.aliases[0], f"Unknown reference {e}") from e

    distribution = cloudfront.Distribution(
      self.scope,
      "SiteDistribution",
      default_behavior=cloudfront.BehaviorOptions(
        origin=origins.S3BucketOrigin.with_origin_access_identity(
          bucket, origin_access_identity=identity
        ),
        viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
        allowed_methods=cloudfront.AllowedMethods.ALLOW_GET_HEAD,
        cached_methods=cloudfront.CachedMethods.CACHE_GET_HEAD,
      ),
      domain_names=list(config.aliases),
      certificate=certificate,
      ssl_support_method=cloudfront.SSLMethod.SNI,
      minimum_protocol_version=security_policy,
      default_root_object=config.default_root_object,
      comment=config.comment,
      error_responses=[
        cloudfront.ErrorResponse(
          http_status=response.error_code,
          response_http_status=response.response_code,
          response_page_path=response.response_page_path,
        )
        for response in config.error_responses
      ],
    )
    self.distributions[distribution.distribution_id] = distribution
    self.distributions[distribution.distribution_domain_name] = distribution
    return Distribution(
      distribution_id=distribution.distribution_id,
      domain_name=distribution.distribution_domain_name,
    )

  def find_records(self, zone: HostedZone, name: str) -> list[RecordSet]:
    # The synthesized stack is the only writer of the record name
    return []

  def upsert_alias_record(self, zone: HostedZone, name: str, target: str) -> AliasRecord:
    route53.ARecord(
      self.scope,
      "SiteAliasRecord",
      zone=self.zones[zone.zone_id],
      record_name=name,
      target=route53.RecordTarget.from_alias(
        targets.CloudFrontTarget(self.distributions[target])
      ),
    )
    return AliasRecord(name=name, target=target, zone_id=zone.zone_id)

  def upload_assets(self, source: str, bucket: Bucket) -> UploadResult:
    if bucket.name not in self.buckets:
      raise UploadFailed(bucket.name, "Bucket is not part of this stack")

    asset = s3_assets.Asset(self.scope, "SiteAssets", path=source)
    deployment = s3_deploy.BucketDeployment(
      self.scope,
      "DeployAssets",
      sources=[s3_deploy.Source.bucket(asset.bucket, asset.s3_object_key)],
      destination_bucket=self.buckets[bucket.name],
      prune=self.prune,
    )
    upload_id = deployment.node.path
    self.deployments[upload_id] = deployment
    self.assets[upload_id] = asset
    return UploadResult(bucket_name=bucket.name, upload_id=upload_id)

  def create_invalidation(
    self, distribution_id: str, paths: list[str], *, upload: UploadResult
  ) -> str:
    try:
      deployment = self.deployments[upload.upload_id]
      asset = self.assets[upload.upload_id]
    except KeyError as e:
      raise InvalidationFailed(distribution_id, f"Unknown upload {e}") from e

    call = cr.AwsSdkCall(
      service="CloudFront",
      action="createInvalidation",
      parameters={
        "DistributionId": distribution_id,
        "InvalidationBatch": {
          # Changes with the asset contents so every new upload invalidates
          "CallerReference": asset.asset_hash,
          "Paths": {"Quantity": len(paths), "Items": paths},
        },
      },
      physical_resource_id=cr.PhysicalResourceId.from_response("Invalidation.Id"),
    )
    invalidation = cr.AwsCustomResource(
      self.scope,
      "InvalidateCache",
      on_create=call,
      on_update=call,
      policy=cr.AwsCustomResourcePolicy.from_statements(
        [
          iam.PolicyStatement(
            actions=["cloudfront:CreateInvalidation"],
            resources=[f"arn:aws:cloudfront::*:distribution/{distribution_id}"],
          )
        ]
      ),
    )
    invalidation.node.add_dependency(deployment)
    return invalidation.get_response_field("Invalidation.Id")
