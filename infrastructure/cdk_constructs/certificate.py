"""ACM certificate with DNS validation."""

from aws_cdk import Stack, Token
from aws_cdk import aws_certificatemanager as acm
from aws_cdk import aws_route53 as route53
from constructs import Construct

# CloudFront only accepts certificates issued in this region
CLOUDFRONT_CERTIFICATE_REGION = "us-east-1"


class DnsValidatedCertificate(Construct):
  """ACM certificate with DNS validation (no email approval needed).

  CloudFormation holds the stack until the certificate is issued, so the
  distribution that consumes it never activates against a pending one.
  The stack must be deployed to us-east-1.
  """

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    domain_name: str,
    hosted_zone: route53.IHostedZone,
    aliases: list[str] | None = None,
  ) -> None:
    super().__init__(scope, id)

    region = Stack.of(self).region
    if not Token.is_unresolved(region) and region != CLOUDFRONT_CERTIFICATE_REGION:
      raise ValueError(
        f"Certificate for {domain_name} must be created in {CLOUDFRONT_CERTIFICATE_REGION}, "
        f"but the stack targets {region}"
      )

    subject_alternative_names = [a for a in aliases or [] if a != domain_name] or None

    self.certificate = acm.Certificate(
      self,
      "Certificate",
      domain_name=domain_name,
      subject_alternative_names=subject_alternative_names,
      validation=acm.CertificateValidation.from_dns(hosted_zone),
    )
