"""
media/uploader.py -- Client for the third-party media host (Cloudinary).

Incoming multipart files are first written to a local temp directory
(save_temp_file), then pushed to the host by MediaUploader.upload(). The
local copy is removed after every attempt, successful or not, so the temp
directory never accumulates files.

Upload contract:
  upload(local_path) -> dict | None
  The dict is the host's JSON response; callers read "url" from it. None
  means the upload failed or the host is not configured -- callers turn that
  into an UploadError. Network errors are logged, not raised.

Authentication: Cloudinary signed uploads. The signature is
SHA1("timestamp=<ts>" + api_secret); the api_secret itself never leaves the
process.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import shutil
import time
from pathlib import Path
from typing import Any, BinaryIO, Optional

import requests

logger = logging.getLogger("vidtube.media")

UPLOAD_API = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"


def save_temp_file(filename: Optional[str], stream: BinaryIO, temp_dir: str | Path) -> Optional[Path]:
    """Copy an uploaded file stream into temp_dir and return the local path.

    Only the suffix of the client-supplied filename is kept; the stem is
    replaced with a random token so a crafted filename cannot escape temp_dir
    or overwrite another upload. Returns None when there is no file.
    """
    if not filename:
        return None
    directory = Path(temp_dir)
    directory.mkdir(parents=True, exist_ok=True)
    suffix = Path(filename).suffix[:16]
    path = directory / f"{secrets.token_hex(12)}{suffix}"
    with path.open("wb") as out:
        shutil.copyfileobj(stream, out)
    return path


class MediaUploader:
    """Uploads local files to Cloudinary with a shared requests session."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self._api_secret = api_secret
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.max_redirects = 3

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self._api_secret)

    def upload(self, local_path: Optional[str | Path]) -> Optional[dict[str, Any]]:
        """Upload local_path and return the host response, or None on failure.

        The local file is deleted afterwards in every case.
        """
        if not local_path:
            return None
        path = Path(local_path)
        try:
            if not self.configured:
                logger.warning("Media host is not configured; skipping upload of %s", path.name)
                return None
            timestamp = str(int(time.time()))
            data = {
                "api_key": self.api_key,
                "timestamp": timestamp,
                "signature": self._sign({"timestamp": timestamp}),
            }
            with path.open("rb") as fh:
                resp = self._session.post(
                    UPLOAD_API.format(cloud_name=self.cloud_name),
                    data=data,
                    files={"file": (path.name, fh)},
                    timeout=self.timeout,
                )
            resp.raise_for_status()
            body = resp.json()
            logger.info("Uploaded %s (%s bytes)", path.name, body.get("bytes", "?"))
            return body
        except (requests.RequestException, ValueError, OSError) as e:
            logger.warning("Media upload failed for %s: %s", path.name, e)
            return None
        finally:
            path.unlink(missing_ok=True)

    def _sign(self, params: dict[str, str]) -> str:
        """Cloudinary signature: sorted key=value pairs joined by '&', then
        the api secret appended, SHA1 hex digest."""
        to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
        return hashlib.sha1((to_sign + self._api_secret).encode("utf-8")).hexdigest()  # nosec B324
