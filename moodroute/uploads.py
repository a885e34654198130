"""Image uploads: data-URL decoding, safe upload paths and inline markers."""
from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
import secrets
import time
from pathlib import Path
from typing import Any, List, NamedTuple, Optional

from moodroute.models import ChatAttachment


logger = logging.getLogger("moodroute.uploads")

MAX_CHAT_ATTACHMENTS = 2
SAFE_UPLOAD_PATH = re.compile(r"^/uploads/[A-Za-z0-9._-]+$")
IMAGE_EXTENSION_TO_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}
_MIME_TO_EXTENSION = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}
_DATA_URL = re.compile(r"^data:(image/(?:png|jpeg|jpg|webp|gif));base64,([A-Za-z0-9+/=]+)$")
_IMAGE_MARKER = re.compile(r"\[\[image:([^\]|]+)\|?([^\]]*)\]\]")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\- ]+")


class UploadError(ValueError):
    """Rejected image upload; the message is safe to show to the user."""


class DecodedImage(NamedTuple):
    mime: str
    extension: str
    payload: bytes


def sanitize_upload_file_name(name: Any) -> str:
    text = name.strip() if isinstance(name, str) else ""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", text).strip()[:80]
    return cleaned or "uploaded-image"


def is_safe_upload_url(upload_url: Optional[str]) -> bool:
    return bool(SAFE_UPLOAD_PATH.match((upload_url or "").strip()))


def decode_data_url_image(data_url: Optional[str]) -> Optional[DecodedImage]:
    match = _DATA_URL.match((data_url or "").strip())
    if not match:
        return None
    mime = "image/jpeg" if match.group(1) == "image/jpg" else match.group(1)
    try:
        payload = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        return None
    if not payload:
        return None
    return DecodedImage(mime=mime, extension=_MIME_TO_EXTENSION[mime], payload=payload)


def save_upload(data_url: Optional[str], uploads_dir: Path, max_bytes: int) -> str:
    """Decode and store an uploaded image, returning its public /uploads/ URL."""
    decoded = decode_data_url_image(data_url)
    if decoded is None:
        raise UploadError("Invalid image data.")
    if len(decoded.payload) > max_bytes:
        raise UploadError(f"Image is too large. Max {max_bytes // (1024 * 1024)} MB.")

    uploads_dir.mkdir(parents=True, exist_ok=True)
    unique_name = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{decoded.extension}"
    (uploads_dir / unique_name).write_bytes(decoded.payload)
    logger.info("Stored upload %s (%s bytes)", unique_name, len(decoded.payload))
    return f"/uploads/{unique_name}"


def normalize_chat_attachments(raw: Any) -> List[ChatAttachment]:
    """Keep at most two attachments whose URLs point inside /uploads/."""
    if not isinstance(raw, list):
        return []
    attachments: List[ChatAttachment] = []
    for item in raw[:MAX_CHAT_ATTACHMENTS]:
        if isinstance(item, ChatAttachment):
            url, file_name = item.url, item.file_name
        elif isinstance(item, dict):
            url = item.get("url") or ""
            file_name = item.get("fileName") or item.get("file_name")
        else:
            continue
        url = url.strip() if isinstance(url, str) else ""
        if not is_safe_upload_url(url):
            continue
        attachments.append(ChatAttachment(url=url, file_name=sanitize_upload_file_name(file_name)))
    return attachments


async def convert_upload_to_data_url(upload_url: str, uploads_dir: Path, max_bytes: int) -> Optional[str]:
    """Inline a stored upload as a base64 data URL for the model.

    None when the URL is unsafe, the extension is not an image, or the file
    is empty or over the size cap. Missing files raise OSError.
    """
    if not is_safe_upload_url(upload_url):
        return None
    file_name = Path(upload_url).name
    mime = IMAGE_EXTENSION_TO_MIME.get(Path(file_name).suffix.lower())
    if mime is None:
        return None

    payload = await asyncio.to_thread((uploads_dir / file_name).read_bytes)
    if not payload or len(payload) > max_bytes:
        return None
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


def image_marker(attachment: ChatAttachment) -> str:
    return f"[[image:{attachment.url}|{attachment.file_name}]]"


def compose_user_message(message: str, attachments: List[ChatAttachment]) -> str:
    """User text as persisted, with one inline marker line per attachment."""
    base = message or "Shared a photo."
    if not attachments:
        return base
    return "\n".join([base, *(image_marker(item) for item in attachments)])


def extract_image_markers(text: str) -> List[ChatAttachment]:
    found = []
    for match in _IMAGE_MARKER.finditer(text or ""):
        url = match.group(1).strip()
        if is_safe_upload_url(url):
            found.append(ChatAttachment(url=url, file_name=sanitize_upload_file_name(match.group(2))))
    return found


def compact_message_preview(text: str) -> str:
    replaced = re.sub(r"\[\[image:[^\]]+\]\]", "[Photo]", text or "")
    return re.sub(r"\s+", " ", replaced).strip()
