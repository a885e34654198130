import base64

import pytest

from moodroute.models import ChatAttachment
from moodroute.uploads import (
    UploadError,
    compact_message_preview,
    compose_user_message,
    convert_upload_to_data_url,
    decode_data_url_image,
    extract_image_markers,
    is_safe_upload_url,
    normalize_chat_attachments,
    sanitize_upload_file_name,
    save_upload,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x01" * 32


def _data_url(mime="image/png", payload=PNG_BYTES):
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


@pytest.mark.parametrize(
    "url, safe",
    [
        ("/uploads/1700-abc.png", True),
        ("  /uploads/a_b.c-d.jpg ", True),
        ("/uploads/../secrets.txt", False),
        ("/uploads/sub/dir.png", False),
        ("https://example.com/uploads/a.png", False),
        ("", False),
        (None, False),
    ],
)
def test_is_safe_upload_url(url, safe):
    assert is_safe_upload_url(url) is safe


def test_sanitize_file_name():
    assert sanitize_upload_file_name("  my <photo>.png ") == "my photo.png"
    assert sanitize_upload_file_name("???") == "uploaded-image"
    assert sanitize_upload_file_name(None) == "uploaded-image"
    assert len(sanitize_upload_file_name("a" * 200)) == 80


def test_decode_data_url():
    decoded = decode_data_url_image(_data_url("image/jpg"))
    assert decoded.mime == "image/jpeg"
    assert decoded.extension == "jpg"
    assert decoded.payload == PNG_BYTES


@pytest.mark.parametrize(
    "value",
    [None, "", "data:text/plain;base64,aGVsbG8=", "data:image/png;base64,@@@", "data:image/png;base64,"],
)
def test_decode_rejects_bad_input(value):
    assert decode_data_url_image(value) is None


def test_save_upload_writes_file(settings):
    url = save_upload(_data_url(), settings.uploads_dir, settings.max_image_upload_bytes)
    assert is_safe_upload_url(url)
    assert url.endswith(".png")
    assert (settings.uploads_dir / url.rsplit("/", 1)[1]).read_bytes() == PNG_BYTES


def test_save_upload_rejects_invalid_and_large(settings):
    with pytest.raises(UploadError, match="Invalid image data."):
        save_upload("not a data url", settings.uploads_dir, 1024)
    with pytest.raises(UploadError, match="too large"):
        save_upload(_data_url(payload=b"x" * 2048), settings.uploads_dir, 1024)


def test_normalize_chat_attachments():
    raw = [
        {"url": "/uploads/a.png", "fileName": "<a>.png"},
        {"url": "https://evil.example/b.png", "fileName": "b.png"},
        "junk",
        {"url": "/uploads/c.png"},
    ]
    attachments = normalize_chat_attachments(raw)
    assert attachments == [ChatAttachment(url="/uploads/a.png", file_name="a.png")]
    assert normalize_chat_attachments("nope") == []


def test_normalize_keeps_at_most_two():
    raw = [{"url": f"/uploads/{n}.png", "fileName": f"{n}.png"} for n in range(4)]
    assert [a.url for a in normalize_chat_attachments(raw)] == ["/uploads/0.png", "/uploads/1.png"]


async def test_convert_upload_to_data_url(settings):
    (settings.uploads_dir / "1-x.png").write_bytes(PNG_BYTES)
    data_url = await convert_upload_to_data_url("/uploads/1-x.png", settings.uploads_dir, 1024)
    assert data_url == _data_url()


async def test_convert_refuses_unsafe_or_unsupported(settings):
    (settings.uploads_dir / "notes.txt").write_bytes(b"hello")
    (settings.uploads_dir / "big.png").write_bytes(b"x" * 64)
    assert await convert_upload_to_data_url("/uploads/../notes.txt", settings.uploads_dir, 1024) is None
    assert await convert_upload_to_data_url("/uploads/notes.txt", settings.uploads_dir, 1024) is None
    assert await convert_upload_to_data_url("/uploads/big.png", settings.uploads_dir, 10) is None


async def test_convert_missing_file_raises(settings):
    with pytest.raises(OSError):
        await convert_upload_to_data_url("/uploads/missing.png", settings.uploads_dir, 1024)


def test_markers_round_trip_through_stored_text(photo):
    stored = compose_user_message("look at this", [photo])
    assert stored == "look at this\n[[image:/uploads/1700000000000-abc123.png|harbor.png]]"
    assert extract_image_markers(stored) == [photo]
    assert compact_message_preview(stored) == "look at this [Photo]"


def test_photo_only_message(photo):
    assert compose_user_message("", [photo]).startswith("Shared a photo.\n[[image:")
    assert compose_user_message("plain", []) == "plain"


def test_unsafe_markers_are_ignored():
    assert extract_image_markers("[[image:https://evil.example/x.png|x]]") == []
