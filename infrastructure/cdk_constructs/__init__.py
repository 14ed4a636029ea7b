"""CDK constructs for static website infrastructure."""

from .certificate import DnsValidatedCertificate
from .content import SiteContent
from .distribution import CloudFrontDistribution
from .dns import DnsRecords
from .edge_function import IndexRewriteFunction
from .static_site import StaticSiteConstruct
from .storage import StorageBucket

__all__ = [
  "CloudFrontDistribution",
  "DnsRecords",
  "DnsValidatedCertificate",
  "IndexRewriteFunction",
  "SiteContent",
  "StaticSiteConstruct",
  "StorageBucket",
]
