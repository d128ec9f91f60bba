"""Task attachment storage on a Supabase Storage bucket.

Objects live at ``{owner_id}/{task_id}/{filename}``. Tasks only keep the
public URL, so deletion recovers the object path from that URL.
"""

from __future__ import annotations

import logging
from urllib.parse import unquote, urlsplit

from supabase._async.client import AsyncClient

from taskboard.exceptions import StorageError
from taskboard.models.task import Attachment

logger = logging.getLogger(__name__)


def attachment_path(owner_id: str, task_id: str, filename: str) -> str:
    """Object path for a task's attachment."""
    safe_name = filename.replace("/", "_").replace("\\", "_") or "attachment"
    return f"{owner_id}/{task_id}/{safe_name}"


def path_from_public_url(url: str, bucket: str) -> str | None:
    """Recover the object path from a bucket's public URL, or None if it is not one."""
    marker = f"/object/public/{bucket}/"
    path = urlsplit(url).path
    if marker not in path:
        return None
    return unquote(path.split(marker, 1)[1]) or None


async def upload_attachment(
    client: AsyncClient,
    bucket: str,
    owner_id: str,
    task_id: str,
    attachment: Attachment,
) -> str:
    """Upload ``attachment`` and return its public URL.

    Raises:
        StorageError: if the upload or URL lookup fails
    """
    path = attachment_path(owner_id, task_id, attachment.filename)
    try:
        store = client.storage.from_(bucket)
        await store.upload(
            path=path,
            file=attachment.content,
            file_options={"content-type": attachment.content_type, "upsert": "true"},
        )
        url = await store.get_public_url(path)
    except Exception as e:
        logger.error(f"[STORAGE] Upload of {path} failed: {e}")
        raise StorageError(f"Failed to upload {attachment.filename}: {e}") from e
    logger.info(f"[STORAGE] Uploaded {path} ({len(attachment.content)} bytes)")
    return url.rstrip("?")


async def delete_attachment(client: AsyncClient, bucket: str, url: str) -> bool:
    """Remove the object behind ``url``. Best-effort: failures are logged, never raised.

    Returns True if the object was removed.
    """
    path = path_from_public_url(url, bucket)
    if path is None:
        logger.warning(f"[STORAGE] Not a {bucket} URL, skipping delete: {url}")
        return False
    try:
        await client.storage.from_(bucket).remove([path])
    except Exception as e:
        logger.error(f"[STORAGE] Error deleting {path}: {e}")
        return False
    logger.info(f"[STORAGE] Deleted {path}")
    return True
