"""Request routing rules shared by the CDK stack and the boto3 provisioner.

The CloudFront Function below is uploaded verbatim. ``rewrite`` mirrors it
line for line so the behavior can be tested without an edge runtime.
"""

from dataclasses import dataclass

ROOT_DOCUMENT = "index.html"

REWRITE_FUNCTION_CODE = """function handler(event) {
  var request = event.request;
  var uri = request.uri;

  if (uri.endsWith("/")) {
    request.uri += "index.html";
  } else if (!uri.includes(".")) {
    request.uri += "/index.html";
  }

  return request;
}
"""


def rewrite(uri: str) -> str:
  """Map directory-style and extensionless URIs to a concrete document."""
  if uri.endswith("/"):
    return uri + ROOT_DOCUMENT
  if "." not in uri:
    return uri + "/" + ROOT_DOCUMENT
  return uri


@dataclass(frozen=True)
class ErrorFallbackRule:
  """Replace an origin error with a document served at another status."""

  error_code: int
  response_code: int
  response_page_path: str
  cache_minutes: int

  @property
  def cache_seconds(self) -> int:
    return self.cache_minutes * 60


# Single-page style fallback: both misses and denied reads serve the root.
ERROR_FALLBACK_RULES: tuple[ErrorFallbackRule, ...] = (
  ErrorFallbackRule(404, 200, f"/{ROOT_DOCUMENT}", 5),
  ErrorFallbackRule(403, 200, f"/{ROOT_DOCUMENT}", 5),
)
