"""CloudFront Function that rewrites directory-style URIs."""

from aws_cdk import aws_cloudfront as cloudfront
from constructs import Construct

from infrastructure.routing import REWRITE_FUNCTION_CODE


class IndexRewriteFunction(Construct):
  """Viewer-request function appending ``index.html`` to directory URIs."""

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    resource_prefix: str = "",
  ) -> None:
    super().__init__(scope, id)

    self.function = cloudfront.Function(
      self,
      f"{resource_prefix}-index-rewrite" if resource_prefix else "Function",
      code=cloudfront.FunctionCode.from_inline(REWRITE_FUNCTION_CODE),
      runtime=cloudfront.FunctionRuntime.JS_1_0,
      comment="Rewrite directory URIs to index.html",
    )

  @property
  def association(self) -> cloudfront.FunctionAssociation:
    """Binding that runs the function before the cache lookup."""
    return cloudfront.FunctionAssociation(
      function=self.function,
      event_type=cloudfront.FunctionEventType.VIEWER_REQUEST,
    )
