"""CDK stack for a single static website."""

from typing import Any

import aws_cdk as cdk
from constructs import Construct

from sitegraph.components import provision_site
from sitegraph.config import SiteConfig
from sitegraph.graph import RunContext
from sitegraph.providers.cdk import CdkProvider


class StaticSiteStack(cdk.Stack):
  """Stack whose resources are declared by evaluating the site graph."""

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    site_config: SiteConfig,
    **kwargs: Any,
  ) -> None:
    super().__init__(scope, id, **kwargs)

    self.provider = CdkProvider(
      self,
      hosted_zone_id=site_config.hosted_zone_id,
      removal_policy=site_config.removal_policy,
    )
    # Constructs are not thread-safe, so the graph is evaluated serially
    self.outputs = provision_site(RunContext(site=site_config, provider=self.provider))

    # Outputs
    cdk.CfnOutput(self, "Site", value=self.outputs.site_url, description="Site URL")
    cdk.CfnOutput(
      self,
      "Bucket",
      value=self.outputs.bucket_name,
      description="S3 bucket name",
    )
    cdk.CfnOutput(
      self,
      "Certificate",
      value=self.outputs.certificate_arn,
      description="ACM certificate ARN",
    )
    cdk.CfnOutput(
      self,
      "DistributionId",
      value=self.outputs.distribution_id,
      description="CloudFront distribution ID",
    )
    cdk.CfnOutput(
      self,
      "DistributionDomainName",
      value=self.outputs.distribution_domain_name,
      description="CloudFront distribution domain name",
    )

    cdk.Tags.of(self).add("Project", "static-sites")
    cdk.Tags.of(self).add("Domain", site_config.site_domain)
