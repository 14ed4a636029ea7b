"""Publish the URI rewrite routine as a CloudFront Function."""

import logging
from typing import Any

from botocore.exceptions import ClientError

from infrastructure.routing import REWRITE_FUNCTION_CODE

from .models import EdgeFunction

logger = logging.getLogger(__name__)

FUNCTION_CONFIG = {
  "Comment": "Rewrite directory URIs to index.html",
  "Runtime": "cloudfront-js-1.0",
}


def _is_missing(error: ClientError) -> bool:
  return error.response.get("Error", {}).get("Code") == "NoSuchFunctionExists"


def _live_function(cloudfront: Any, name: str, body: bytes) -> EdgeFunction | None:
  """The live function when it already runs exactly ``body``."""
  try:
    live = cloudfront.get_function(Name=name, Stage="LIVE")
  except ClientError as e:
    if _is_missing(e):
      return None
    raise
  if live["FunctionCode"].read() != body:
    return None
  summary = cloudfront.describe_function(Name=name, Stage="LIVE")["FunctionSummary"]
  return EdgeFunction(name=name, arn=summary["FunctionMetadata"]["FunctionARN"])


def publish_edge_function(
  cloudfront: Any,
  name: str,
  code: str = REWRITE_FUNCTION_CODE,
) -> EdgeFunction:
  """Create or update the function and promote it to LIVE.

  Does nothing when the live stage already carries ``code``.
  """
  body = code.encode("utf-8")

  current = _live_function(cloudfront, name, body)
  if current is not None:
    logger.info(f"Edge function {name} is up to date")
    return current

  try:
    development = cloudfront.describe_function(Name=name, Stage="DEVELOPMENT")
  except ClientError as e:
    if not _is_missing(e):
      raise
    etag = cloudfront.create_function(
      Name=name,
      FunctionConfig=FUNCTION_CONFIG,
      FunctionCode=body,
    )["ETag"]
    logger.info(f"Created edge function {name}")
  else:
    etag = cloudfront.update_function(
      Name=name,
      IfMatch=development["ETag"],
      FunctionConfig=FUNCTION_CONFIG,
      FunctionCode=body,
    )["ETag"]
    logger.info(f"Updated edge function {name}")

  summary = cloudfront.publish_function(Name=name, IfMatch=etag)["FunctionSummary"]
  logger.info(f"Published edge function {name} to LIVE")
  return EdgeFunction(name=name, arn=summary["FunctionMetadata"]["FunctionARN"])
