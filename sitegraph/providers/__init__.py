"""Cloud provisioning API implementations."""

from .aws import AwsProvider
from .base import CloudProvider
from .cdk import CdkProvider

__all__ = ["AwsProvider", "CdkProvider", "CloudProvider"]
