from __future__ import annotations

import base64

import pytest

from ethervote.errors import ValidationFailedError
from ethervote.images import ImageStore, decode_base64_image


def test_save_writes_file_and_returns_public_url(tmp_path) -> None:
    store = ImageStore(str(tmp_path / "photos"), "http://localhost:8000/", max_bytes=1024)

    url = store.save(b"GIF89a", "image/gif", "party.gif")

    name = url.rsplit("/", 1)[1]
    assert url.startswith("http://localhost:8000/uploads/candidate_photos/")
    assert name.endswith(".gif")
    assert (tmp_path / "photos" / name).read_bytes() == b"GIF89a"


def test_extension_falls_back_to_content_type(tmp_path) -> None:
    store = ImageStore(str(tmp_path), "http://testserver", max_bytes=1024)

    assert store.save(b"data", "image/webp", "upload.bin").endswith(".webp")
    assert store.save(b"data", "image/svg+xml").endswith(".svg")
    assert store.save(b"data", "image/x-icon").endswith(".jpg")


@pytest.mark.parametrize(
    "data, content_type",
    [(b"hello", "text/plain"), (b"hello", None), (b"", "image/png"), (b"x" * 2048, "image/png")],
)
def test_save_rejects_invalid_images(tmp_path, data, content_type) -> None:
    store = ImageStore(str(tmp_path / "photos"), "http://testserver", max_bytes=1024)

    with pytest.raises(ValidationFailedError):
        store.save(data, content_type, "photo.png")

    assert not (tmp_path / "photos").exists()


def test_decode_data_url() -> None:
    encoded = "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()

    assert decode_base64_image(encoded) == (b"\x89PNG", "image/png")


def test_decode_raw_base64_with_newlines() -> None:
    raw = base64.b64encode(b"jpegbytes" * 20).decode()
    wrapped = "\n".join(raw[i:i + 40] for i in range(0, len(raw), 40))

    assert decode_base64_image(wrapped) == (b"jpegbytes" * 20, "image/jpeg")


@pytest.mark.parametrize("value", ["", "   ", "data:image/png;base64", "not base64!!"])
def test_decode_rejects_bad_input(value) -> None:
    with pytest.raises(ValidationFailedError):
        decode_base64_image(value)
