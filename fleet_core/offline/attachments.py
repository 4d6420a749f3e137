# =============================================================================
# fleet_core/offline/attachments.py
# Data-URI Attachments -> Storage Uploads
# =============================================================================
"""
Images and receipts arrive from forms as base64 data URIs
(``data:<mime>;base64,<payload>``). Before a record is written they are
uploaded to the storage bucket and replaced by their public URL. Entries that
already hold a plain URL pass through untouched.
"""

from __future__ import annotations
import base64
import binascii
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging

from fleet_core.errors import GatewayError, GatewayErrorKind, SessionCorruptedError
from fleet_core.offline.gateway import RemoteGateway

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:"
DEFAULT_MIME = "image/jpeg"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[^;,]*)(?:;[^;,]*)*?;base64,(?P<payload>.*)$", re.DOTALL)
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")

# Extensions that differ from the MIME subtype
_EXTENSIONS = {
    "jpeg": "jpg",
    "svg+xml": "svg",
    "x-icon": "ico",
}


@dataclass(frozen=True)
class DataUri:
    mime_type: str
    content: bytes

    @property
    def extension(self) -> str:
        return extension_for(self.mime_type)


def is_data_uri(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(DATA_URI_PREFIX)


def parse_data_uri(value: str) -> DataUri:
    """Decode a base64 data URI. Raises ValueError when it is not one."""
    match = _DATA_URI_RE.match(value or "")
    if not match:
        raise ValueError("Invalid base64 data URI")
    try:
        content = base64.b64decode(match.group("payload"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 payload: {e}")
    return DataUri(mime_type=match.group("mime") or DEFAULT_MIME, content=content)


def extension_for(mime_type: str) -> str:
    subtype = mime_type.split("/")[-1].lower() if mime_type else "jpeg"
    return _EXTENSIONS.get(subtype, subtype or "jpg")


def storage_path(folder: str, ref: Any, extension: str, timestamp_ms: Optional[int] = None) -> str:
    """``<folder>/<epoch ms>_<ref with unsafe characters removed>.<ext>``"""
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    safe_ref = _UNSAFE_CHARS.sub("", str(ref))
    return f"{folder}/{ts}_{safe_ref}.{extension}"


def upload_data_uri(gateway: RemoteGateway, value: str, folder: str, ref: Any) -> str:
    """Upload one data URI and return its public URL."""
    data = parse_data_uri(value)
    path = storage_path(folder, ref, data.extension)
    logger.info(f"Uploading attachment to {path} ({data.mime_type}, {len(data.content)} bytes)")
    gateway.upload(path, data.content, data.mime_type, upsert=True)
    return gateway.public_url(path)


def process_attachments(
    gateway: Optional[RemoteGateway],
    items: Optional[List[Dict[str, Any]]],
    folder: str,
    keep_failed: bool = False,
) -> Optional[List[Dict[str, Any]]]:
    """
    Replace data-URI ``url`` fields of attachment dicts with public URLs.

    An attachment whose upload fails (or that cannot be uploaded because no
    gateway is configured) is dropped, or kept unchanged when ``keep_failed``.
    Returns None when ``items`` is None so partial updates stay partial.
    """
    if items is None:
        return None

    processed = []
    for item in items:
        url = item.get("url")
        if not is_data_uri(url):
            processed.append(item)
            continue
        try:
            if gateway is None:
                raise GatewayError("No remote storage configured", kind=GatewayErrorKind.NOT_CONFIGURED)
            public_url = upload_data_uri(gateway, url, folder, item.get("id", ""))
        except SessionCorruptedError:
            raise
        except (GatewayError, ValueError) as e:
            logger.warning(f"Attachment upload failed for {item.get('id')}: {e}")
            if keep_failed:
                processed.append(item)
            continue
        processed.append({**item, "url": public_url})
    return processed
