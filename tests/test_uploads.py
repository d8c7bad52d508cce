from __future__ import annotations

import io
import os
import re

import pytest
from werkzeug.datastructures import FileStorage

from uploads import UploadRejected, UploadStore, public_url, unique_name


def _file(data: bytes = b"img", name: str = "p.jpg", mimetype: str = "image/jpeg") -> FileStorage:
    return FileStorage(stream=io.BytesIO(data), filename=name, content_type=mimetype)


def test_unique_name_shape() -> None:
    assert re.fullmatch(r"\d{13}-\d{1,10}\.jpg", unique_name("My Photo.JPG"))
    assert re.fullmatch(r"\d{13}-\d{1,10}", unique_name("noext"))
    assert ".." not in unique_name("../../etc/passwd.png")


def test_check_limits(tmp_path) -> None:
    up = UploadStore(str(tmp_path), max_bytes=10, max_files=2)
    with pytest.raises(UploadRejected):
        up.check([_file(), _file(), _file()])
    with pytest.raises(UploadRejected):
        up.check([_file(b"x" * 11)])
    with pytest.raises(UploadRejected):
        up.check([_file(mimetype="text/plain")])
    assert len(up.check([_file(), FileStorage(filename="")])) == 1


def test_save_and_remove_for_urls(tmp_path) -> None:
    d = tmp_path / "uploads"
    up = UploadStore(str(d))
    names = up.save([_file(b"a"), _file(b"b", "q.png", "image/png")])
    assert sorted(os.listdir(d)) == sorted(names)
    urls = [public_url("https://h.example/", n) for n in names]
    assert urls[0] == f"https://h.example/uploads/{names[0]}"
    assert up.remove_for_urls(urls + ["https://h.example/uploads/gone.jpg"]) == 2
    assert os.listdir(d) == []


def test_remove_stays_inside_upload_dir(tmp_path) -> None:
    outside = tmp_path / "keep.txt"
    outside.write_text("x")
    up = UploadStore(str(tmp_path / "uploads"))
    up.remove(["../keep.txt"])
    assert outside.exists()
