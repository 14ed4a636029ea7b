"""Private S3 origin bucket and the CloudFront identity allowed to read it."""

import json
import logging
from typing import Any

from botocore.exceptions import ClientError

from .errors import ResourceConflict
from .models import AccessPrincipal, OriginStore

logger = logging.getLogger(__name__)

OWNER_TAG = "static-site:owner"


def _error_code(error: ClientError) -> str:
  return str(error.response.get("Error", {}).get("Code", ""))


def _bucket_owner(s3: Any, bucket_name: str) -> str | None:
  try:
    response = s3.get_bucket_tagging(Bucket=bucket_name)
  except ClientError as e:
    if _error_code(e) == "NoSuchTagSet":
      return None
    raise
  for tag in response.get("TagSet", []):
    if tag["Key"] == OWNER_TAG:
      return str(tag["Value"])
  return None


def provision_origin(s3: Any, bucket_name: str, region: str, *, owner: str) -> OriginStore:
  """Create the origin bucket, or adopt it when we already own it.

  Public access is blocked on every path. Raises ``ResourceConflict`` when
  the name is taken by another account or another deployment.
  """
  try:
    s3.head_bucket(Bucket=bucket_name)
    exists = True
  except ClientError as e:
    code = _error_code(e)
    if code in ("404", "NoSuchBucket"):
      exists = False
    elif code in ("403", "AccessDenied"):
      raise ResourceConflict(
        f"Bucket {bucket_name} exists in another account", stage="origin"
      ) from e
    else:
      raise

  if exists:
    current_owner = _bucket_owner(s3, bucket_name)
    if current_owner != owner:
      raise ResourceConflict(
        f"Bucket {bucket_name} is owned by {current_owner or 'an unmanaged deployment'}",
        stage="origin",
      )
    logger.info(f"Using existing bucket: {bucket_name}")
  else:
    params: dict[str, Any] = {"Bucket": bucket_name}
    if region != "us-east-1":
      params["CreateBucketConfiguration"] = {"LocationConstraint": region}
    try:
      s3.create_bucket(**params)
    except ClientError as e:
      if _error_code(e) == "BucketAlreadyExists":
        raise ResourceConflict(f"Bucket name {bucket_name} is taken", stage="origin") from e
      raise
    try:
      s3.put_bucket_tagging(
        Bucket=bucket_name,
        Tagging={"TagSet": [{"Key": OWNER_TAG, "Value": owner}]},
      )
    except BaseException:
      # An untagged bucket would read as foreign on the next run
      logger.warning(f"Tagging {bucket_name} failed, removing the new bucket")
      s3.delete_bucket(Bucket=bucket_name)
      raise
    logger.info(f"Created bucket: {bucket_name}")

  s3.put_public_access_block(
    Bucket=bucket_name,
    PublicAccessBlockConfiguration={
      "BlockPublicAcls": True,
      "IgnorePublicAcls": True,
      "BlockPublicPolicy": True,
      "RestrictPublicBuckets": True,
    },
  )
  return OriginStore(bucket_name=bucket_name, region=region)


def ensure_access_principal(cloudfront: Any, owner: str) -> AccessPrincipal:
  """Find or create the origin access identity tagged with ``owner``."""
  paginator = cloudfront.get_paginator("list_cloud_front_origin_access_identities")
  for page in paginator.paginate():
    for item in page.get("CloudFrontOriginAccessIdentityList", {}).get("Items", []):
      if item.get("Comment") == owner:
        logger.info(f"Using existing origin access identity {item['Id']}")
        return AccessPrincipal(
          identity_id=item["Id"],
          canonical_user_id=item["S3CanonicalUserId"],
        )

  response = cloudfront.create_cloud_front_origin_access_identity(
    CloudFrontOriginAccessIdentityConfig={"CallerReference": owner, "Comment": owner}
  )
  identity = response["CloudFrontOriginAccessIdentity"]
  logger.info(f"Created origin access identity {identity['Id']}")
  return AccessPrincipal(
    identity_id=identity["Id"],
    canonical_user_id=identity["S3CanonicalUserId"],
  )


def read_policy(store: OriginStore, principal: AccessPrincipal) -> dict[str, Any]:
  """Bucket policy whose only reader is ``principal``."""
  bucket_arn = f"arn:aws:s3:::{store.bucket_name}"
  return {
    "Version": "2012-10-17",
    "Statement": [
      {
        "Sid": "CloudFrontReadObjects",
        "Effect": "Allow",
        "Principal": {"AWS": principal.iam_arn},
        "Action": "s3:GetObject",
        "Resource": f"{bucket_arn}/*",
      },
      {
        # Lets missing keys surface as 404 instead of 403
        "Sid": "CloudFrontListBucket",
        "Effect": "Allow",
        "Principal": {"AWS": principal.iam_arn},
        "Action": "s3:ListBucket",
        "Resource": bucket_arn,
      },
    ],
  }


def grant_read(s3: Any, store: OriginStore, principal: AccessPrincipal) -> None:
  """Replace the bucket policy so only ``principal`` can read the store."""
  s3.put_bucket_policy(
    Bucket=store.bucket_name,
    Policy=json.dumps(read_policy(store, principal)),
  )
  logger.info(f"Granted {principal.identity_id} read access to {store.bucket_name}")
