"""Mirror a build directory into the origin store and purge the CDN cache."""

import hashlib
import logging
import mimetypes
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from .errors import DistributionNotActive, InvalidationFailure, PublishIOFailure
from .models import Distribution, OriginStore, PublishResult

logger = logging.getLogger(__name__)

# Fingerprinted bundles never change under the same key
IMMUTABLE_PREFIXES = ("assets/", "_astro/")
DELETE_BATCH_SIZE = 1000


@dataclass(frozen=True)
class SyncPlan:
  uploads: list[str]
  deletes: list[str]
  unchanged: list[str]


def _md5(path: Path) -> str:
  digest = hashlib.md5()
  with open(path, "rb") as f:
    for chunk in iter(lambda: f.read(1024 * 1024), b""):
      digest.update(chunk)
  return digest.hexdigest()


def local_manifest(build_dir: Path) -> dict[str, str]:
  """Map each file under ``build_dir`` to its MD5, keyed by POSIX path."""
  if not build_dir.is_dir():
    raise PublishIOFailure(f"Build directory not found: {build_dir}")
  return {
    path.relative_to(build_dir).as_posix(): _md5(path)
    for path in sorted(build_dir.rglob("*"))
    if path.is_file()
  }


def remote_manifest(s3: Any, bucket_name: str) -> dict[str, str]:
  """Map each object key in the bucket to its ETag."""
  objects: dict[str, str] = {}
  paginator = s3.get_paginator("list_objects_v2")
  for page in paginator.paginate(Bucket=bucket_name):
    for item in page.get("Contents", []):
      objects[item["Key"]] = item["ETag"].strip('"')
  return objects


def plan_sync(local: dict[str, str], remote: dict[str, str]) -> SyncPlan:
  """Uploads and deletes that make ``remote`` equal to ``local``."""
  uploads = sorted(key for key, digest in local.items() if remote.get(key) != digest)
  unchanged = sorted(key for key, digest in local.items() if remote.get(key) == digest)
  deletes = sorted(key for key in remote if key not in local)
  return SyncPlan(uploads=uploads, deletes=deletes, unchanged=unchanged)


def content_headers(key: str) -> dict[str, str]:
  """Content type and cache policy for an object key."""
  content_type, _ = mimetypes.guess_type(key)
  headers = {"ContentType": content_type or "application/octet-stream"}
  if key.endswith(".html"):
    headers["CacheControl"] = "no-cache"
  elif key.startswith(IMMUTABLE_PREFIXES):
    headers["CacheControl"] = "public, max-age=31536000, immutable"
  return headers


def _upload(s3: Any, build_dir: Path, bucket_name: str, keys: Sequence[str]) -> None:
  for key in keys:
    try:
      s3.put_object(
        Bucket=bucket_name,
        Key=key,
        Body=(build_dir / key).read_bytes(),
        **content_headers(key),
      )
    except (ClientError, BotoCoreError, OSError) as e:
      raise PublishIOFailure(f"Failed to upload {key} to {bucket_name}: {e}") from e
    logger.debug(f"Uploaded s3://{bucket_name}/{key}")


def _delete(s3: Any, bucket_name: str, keys: Sequence[str]) -> None:
  for start in range(0, len(keys), DELETE_BATCH_SIZE):
    batch = keys[start : start + DELETE_BATCH_SIZE]
    try:
      response = s3.delete_objects(
        Bucket=bucket_name,
        Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
      )
    except (ClientError, BotoCoreError) as e:
      raise PublishIOFailure(f"Failed to delete objects from {bucket_name}: {e}") from e
    errors = response.get("Errors", [])
    if errors:
      failed = ", ".join(error["Key"] for error in errors)
      raise PublishIOFailure(f"Failed to delete from {bucket_name}: {failed}")


def invalidate(
  cloudfront: Any,
  distribution: Distribution,
  paths: Sequence[str] = ("/*",),
) -> str:
  """Request a cache invalidation and return its id."""
  try:
    response = cloudfront.create_invalidation(
      DistributionId=distribution.distribution_id,
      InvalidationBatch={
        "Paths": {"Quantity": len(paths), "Items": list(paths)},
        "CallerReference": str(time.time()),
      },
    )
  except (ClientError, BotoCoreError) as e:
    raise InvalidationFailure(
      f"Invalidation of {distribution.distribution_id} failed: {e}"
    ) from e
  invalidation_id = str(response["Invalidation"]["Id"])
  logger.info(f"Created invalidation {invalidation_id} for {', '.join(paths)}")
  return invalidation_id


def publish(
  s3: Any,
  cloudfront: Any,
  build_dir: Path,
  store: OriginStore,
  distribution: Distribution | None,
) -> PublishResult:
  """Make the store an exact mirror of ``build_dir``, then invalidate ``/*``.

  The plan is recomputed from the bucket on every call, so retrying after a
  ``PublishIOFailure`` picks up where the last attempt stopped. An
  ``InvalidationFailure`` carries the completed ``PublishResult``.
  """
  if distribution is None or not distribution.distribution_id:
    raise DistributionNotActive("Cannot publish before the distribution exists", stage="publish")

  local = local_manifest(build_dir)
  try:
    remote = remote_manifest(s3, store.bucket_name)
  except (ClientError, BotoCoreError) as e:
    raise PublishIOFailure(f"Failed to list {store.bucket_name}: {e}") from e

  plan = plan_sync(local, remote)
  logger.info(
    f"Publishing {build_dir} to {store.bucket_name}: {len(plan.uploads)} upload(s), "
    f"{len(plan.deletes)} delete(s), {len(plan.unchanged)} unchanged"
  )
  _upload(s3, build_dir, store.bucket_name, plan.uploads)
  _delete(s3, store.bucket_name, plan.deletes)

  result = PublishResult(
    uploaded=plan.uploads,
    deleted=plan.deletes,
    unchanged=plan.unchanged,
  )
  try:
    result.invalidation_id = invalidate(cloudfront, distribution)
  except InvalidationFailure as e:
    e.result = result
    raise
  return result
