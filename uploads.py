# uploads.py — report photo storage (image/* only, size-capped, unique names)
from __future__ import annotations
import logging, os, random, time
from typing import List, Optional

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

log = logging.getLogger("uploads")

FIELD = "images"


class UploadRejected(ValueError):
    pass


def _ext(original: str) -> str:
    return os.path.splitext(secure_filename(original or ""))[1].lower()

def unique_name(original: str) -> str:
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{_ext(original)}"

def _size(f: FileStorage) -> int:
    stream = f.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


class UploadStore:
    def __init__(self, upload_dir: str = "uploads", max_bytes: int = 10 * 1024 * 1024, max_files: int = 10):
        self.upload_dir = upload_dir
        self.max_bytes = max_bytes
        self.max_files = max_files

    @classmethod
    def from_settings(cls, settings) -> "UploadStore":
        return cls(settings.upload_dir, settings.max_upload_mb * 1024 * 1024, settings.max_images)

    def check(self, files: List[FileStorage]) -> List[FileStorage]:
        """Validate everything before anything touches disk."""
        files = [f for f in files if f and f.filename]
        if len(files) > self.max_files:
            raise UploadRejected(f"at most {self.max_files} images allowed")
        for f in files:
            if not (f.mimetype or "").startswith("image/"):
                raise UploadRejected("only images are allowed")
            if _size(f) > self.max_bytes:
                raise UploadRejected(f"{f.filename}: file too large")
        return files

    def save(self, files: List[FileStorage]) -> List[str]:
        """Returns stored filenames; on failure removes what was already written."""
        os.makedirs(self.upload_dir, exist_ok=True)
        saved: List[str] = []
        try:
            for f in files:
                name = unique_name(f.filename)
                f.save(os.path.join(self.upload_dir, name))
                saved.append(name)
        except OSError:
            self.remove(saved)
            raise
        return saved

    def remove(self, names: List[str]) -> int:
        n = 0
        for name in names:
            try:
                os.remove(os.path.join(self.upload_dir, os.path.basename(name)))
                n += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                log.warning("could not remove upload %s: %s", name, e)
        return n

    def remove_for_urls(self, urls: Optional[List[str]]) -> int:
        return self.remove([u.rstrip("/").rsplit("/", 1)[-1] for u in urls or [] if u])


def public_url(base: str, name: str) -> str:
    return f"{base.rstrip('/')}/uploads/{name}"
