"""CloudFront distribution for static website."""

from aws_cdk import Duration
from aws_cdk import aws_certificatemanager as acm
from aws_cdk import aws_cloudfront as cloudfront
from aws_cdk import aws_cloudfront_origins as origins
from aws_cdk import aws_s3 as s3
from constructs import Construct

from infrastructure.routing import ERROR_FALLBACK_RULES, ROOT_DOCUMENT, ErrorFallbackRule


class CloudFrontDistribution(Construct):
  """CloudFront distribution with a private S3 origin behind an OAI."""

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    bucket: s3.IBucket,
    access_identity: cloudfront.IOriginAccessIdentity,
    certificate: acm.ICertificate,
    function_association: cloudfront.FunctionAssociation,
    domain_names: list[str],
    error_rules: tuple[ErrorFallbackRule, ...] = ERROR_FALLBACK_RULES,
  ) -> None:
    super().__init__(scope, id)

    self.distribution = cloudfront.Distribution(
      self,
      "Distribution",
      default_behavior=cloudfront.BehaviorOptions(
        origin=origins.S3BucketOrigin.with_origin_access_identity(
          bucket,
          origin_access_identity=access_identity,
        ),
        viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
        allowed_methods=cloudfront.AllowedMethods.ALLOW_GET_HEAD,
        cached_methods=cloudfront.CachedMethods.CACHE_GET_HEAD,
        cache_policy=cloudfront.CachePolicy.CACHING_OPTIMIZED,
        function_associations=[function_association],
      ),
      domain_names=domain_names,
      certificate=certificate,
      default_root_object=ROOT_DOCUMENT,
      minimum_protocol_version=cloudfront.SecurityPolicyProtocol.TLS_V1_2_2021,
      error_responses=[
        cloudfront.ErrorResponse(
          http_status=rule.error_code,
          response_http_status=rule.response_code,
          response_page_path=rule.response_page_path,
          ttl=Duration.minutes(rule.cache_minutes),
        )
        for rule in error_rules
      ],
    )
