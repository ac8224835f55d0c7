"""
Blob storage for uploaded audio clips and files.
"""

import os
import time
import uuid
import random
import logging
from werkzeug.utils import secure_filename


logger = logging.getLogger(__name__)

AUDIO_BUCKET = "audio"
FILES_BUCKET = "files"


class LocalBlobStorage:
    """
    Stores blobs on the local filesystem and returns the URL they are served from.

    Audio clips live at the upload root, generic files under ``files/``.
    """

    BUCKET_DIRS = {
        AUDIO_BUCKET: "",
        FILES_BUCKET: "files",
    }

    def __init__(self, root_dir, url_prefix="/uploads"):
        self.root_dir = root_dir
        self.url_prefix = url_prefix.rstrip("/")

    def bucket_path(self, bucket):
        if bucket not in self.BUCKET_DIRS:
            raise ValueError(f"Unknown storage bucket: {bucket}")
        path = os.path.join(self.root_dir, self.BUCKET_DIRS[bucket])
        os.makedirs(path, exist_ok=True)
        return path

    def generate_name(self, suggested_name, bucket):
        if bucket == AUDIO_BUCKET:
            unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
            return f"audio-{unique_suffix}.mp3"

        _, ext = os.path.splitext(secure_filename(suggested_name or ""))
        return f"{uuid.uuid4()}{ext.lower()}"

    def store(self, data, suggested_name, bucket=FILES_BUCKET):
        """Write bytes under a fresh name and return the retrievable URL"""
        name = self.generate_name(suggested_name, bucket)
        path = os.path.join(self.bucket_path(bucket), name)
        with open(path, "wb") as f:
            f.write(data)

        subdir = self.BUCKET_DIRS[bucket]
        url = "/".join(part for part in (self.url_prefix, subdir, name) if part)
        logger.info(f"Stored {len(data)} bytes in {bucket} bucket as {name}")
        return url
