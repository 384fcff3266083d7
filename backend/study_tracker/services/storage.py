"""Local-disk object storage with signed download URLs.

Objects live under STORAGE_DIR/<bucket>/<user_id>/<uuid>.<ext>. Download URLs
carry a short-lived JWT naming the bucket and object path.
"""

import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import aiofiles
from jose import JWTError, jwt

from study_tracker.config import settings

logger = logging.getLogger(__name__)

WORKLOG_IMAGES = "worklog-images"
ASSIGNMENT_IMAGES = "assignment-images"
BUCKETS = (WORKLOG_IMAGES, ASSIGNMENT_IMAGES)

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/heic": "heic",
}


def _bucket_root(bucket: str) -> Path:
    if bucket not in BUCKETS:
        raise LookupError(f"Unknown bucket: {bucket}")
    return Path(settings.STORAGE_DIR).resolve() / bucket


_KEY_TAIL = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\.(?:"
    + "|".join(IMAGE_EXTENSIONS.values())
    + r")"
)


def is_owned_key(user_id: str, path) -> bool:
    """True only for keys shaped exactly like the ones save() hands out to *user_id*."""
    if not isinstance(path, str) or not path.startswith(f"{user_id}/"):
        return False
    return _KEY_TAIL.fullmatch(path[len(user_id) + 1:]) is not None


def object_path(bucket: str, path: str) -> Path:
    """Resolve an object key to a file, rejecting keys that escape the bucket."""
    root = _bucket_root(bucket)
    target = (root / path).resolve()
    if target == root or root not in target.parents:
        raise ValueError("Invalid object path")
    return target


async def save(bucket: str, user_id: str, data: bytes, content_type: str) -> str:
    """Write *data* as a new object and return its key."""
    ext = IMAGE_EXTENSIONS.get(content_type)
    if not ext:
        raise ValueError("Only image uploads are supported")
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise ValueError(f"File too large (max {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB)")

    key = f"{user_id}/{uuid.uuid4()}.{ext}"
    target = object_path(bucket, key)
    target.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(target, "wb") as f:
        await f.write(data)
    return key


def remove(bucket: str, user_id: str, paths: list[str]) -> int:
    """Delete *user_id*'s objects; missing or foreign keys are skipped. Returns count removed."""
    removed = 0
    for path in paths:
        if not is_owned_key(user_id, path):
            logger.warning("Refusing to remove foreign storage key %s/%s for user %s", bucket, path, user_id)
            continue
        target = object_path(bucket, path)
        try:
            target.unlink()
            removed += 1
        except FileNotFoundError:
            logger.info("Storage object already gone: %s/%s", bucket, path)
    return removed


def create_signed_url(bucket: str, path: str, expires_in: int | None = None) -> str:
    expires_in = expires_in or settings.SIGNED_URL_EXPIRE_SECONDS
    expire = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
    token = jwt.encode(
        {"bucket": bucket, "path": path, "type": "storage", "exp": expire},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    return f"/api/storage/{bucket}/object?token={token}"


def resolve_signed_token(bucket: str, token: str) -> Path:
    """Return the file a signed token grants access to."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise PermissionError("Invalid or expired link") from e
    if payload.get("type") != "storage" or payload.get("bucket") != bucket:
        raise PermissionError("Invalid or expired link")
    target = object_path(bucket, payload.get("path", ""))
    if not target.is_file():
        raise LookupError("Object not found")
    return target
