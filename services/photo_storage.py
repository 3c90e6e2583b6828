"""
Character photo uploads to Supabase Storage.

Photos go to the public "characters" bucket, one upload per file, in the
order the user picked them.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from config.settings import PHOTO_BUCKET

logger = logging.getLogger(__name__)


CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
    "heic": "image/heic",
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class PhotoUpload:
    """A photo received from the character form."""
    filename: str
    data: bytes
    content_type: Optional[str] = None


def safe_filename(filename: str) -> str:
    """Reduce a client file name to characters safe in a storage key."""
    name = filename.rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "photo"


def guess_content_type(filename: str) -> str:
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return CONTENT_TYPES.get(extension, "application/octet-stream")


class PhotoStorage:
    """Uploads character photos and returns their public URLs."""

    def __init__(self, db_client, bucket: str = PHOTO_BUCKET):
        """
        Initialize photo storage.

        Args:
            db_client: Supabase client (token-scoped so storage policies apply)
            bucket: Storage bucket name
        """
        self.db = db_client
        self.bucket = bucket

    def upload_photo(
        self,
        owner_id: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Upload one photo and return its public URL.

        The object key is {owner_id}/{epoch_millis}_{safe_filename}.
        """
        key = f"{owner_id}/{int(time.time() * 1000)}_{safe_filename(filename)}"
        bucket = self.db.storage.from_(self.bucket)
        bucket.upload(
            key,
            data,
            {"content-type": content_type or guess_content_type(filename)},
        )
        url = bucket.get_public_url(key)
        logger.info("[Photos] Uploaded %s (%d bytes)", key, len(data))
        return url

    def upload_photos(self, owner_id: str, uploads: Iterable[PhotoUpload]) -> list[str]:
        """Upload photos one at a time; URLs come back in upload order."""
        urls = []
        for upload in uploads:
            urls.append(self.upload_photo(
                owner_id, upload.filename, upload.data, upload.content_type
            ))
        return urls
