"""Tests for publishing the CloudFront Function."""

import io
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from infrastructure.provisioning.edge_function import FUNCTION_CONFIG, publish_edge_function
from infrastructure.routing import REWRITE_FUNCTION_CODE

ARN = "arn:aws:cloudfront::123456789012:function/example-com-index-rewrite"


def _missing() -> ClientError:
  return ClientError(
    {"Error": {"Code": "NoSuchFunctionExists", "Message": "missing"}},
    "GetFunction",
  )


def _summary() -> dict:
  return {"FunctionSummary": {"FunctionMetadata": {"FunctionARN": ARN}}}


class TestPublishEdgeFunction:
  """Tests for publish_edge_function."""

  def test_creates_and_publishes(self) -> None:
    cloudfront = MagicMock()
    cloudfront.get_function.side_effect = _missing()
    cloudfront.describe_function.side_effect = _missing()
    cloudfront.create_function.return_value = {"ETag": "E1"}
    cloudfront.publish_function.return_value = _summary()

    function = publish_edge_function(cloudfront, "example-com-index-rewrite")

    assert function.arn == ARN
    assert function.stage == "LIVE"
    cloudfront.create_function.assert_called_once_with(
      Name="example-com-index-rewrite",
      FunctionConfig=FUNCTION_CONFIG,
      FunctionCode=REWRITE_FUNCTION_CODE.encode("utf-8"),
    )
    cloudfront.publish_function.assert_called_once_with(
      Name="example-com-index-rewrite", IfMatch="E1"
    )

  def test_live_code_unchanged_is_noop(self) -> None:
    cloudfront = MagicMock()
    cloudfront.get_function.return_value = {
      "FunctionCode": io.BytesIO(REWRITE_FUNCTION_CODE.encode("utf-8"))
    }
    cloudfront.describe_function.return_value = _summary()

    function = publish_edge_function(cloudfront, "example-com-index-rewrite")

    assert function.arn == ARN
    cloudfront.create_function.assert_not_called()
    cloudfront.update_function.assert_not_called()
    cloudfront.publish_function.assert_not_called()

  def test_changed_code_is_updated(self) -> None:
    cloudfront = MagicMock()
    cloudfront.get_function.return_value = {"FunctionCode": io.BytesIO(b"old")}
    cloudfront.describe_function.return_value = {"ETag": "E1"}
    cloudfront.update_function.return_value = {"ETag": "E2"}
    cloudfront.publish_function.return_value = _summary()

    publish_edge_function(cloudfront, "example-com-index-rewrite")

    assert cloudfront.update_function.call_args.kwargs["IfMatch"] == "E1"
    cloudfront.publish_function.assert_called_once_with(
      Name="example-com-index-rewrite", IfMatch="E2"
    )
    cloudfront.create_function.assert_not_called()
