# services/drive_links.py
"""
Google Drive / Docs link handling for lesson materials.

Teachers paste sharing links; lessons embed the preview variant of the same
file so it renders inline.
"""
import re
from typing import Optional

_ID_PATTERNS = (
    re.compile(r"/file/d/([^/?#]+)"),
    re.compile(r"/document/d/([^/?#]+)"),
    re.compile(r"/spreadsheets/d/([^/?#]+)"),
    re.compile(r"/presentation/d/([^/?#]+)"),
)
_OPEN_ID = re.compile(r"[?&]id=([^&#]+)")

_DOCS_KINDS = ("document", "spreadsheets", "presentation")

_EXTENSIONS = {
    "pdf": "pdf",
    "jpg": "image", "jpeg": "image", "png": "image", "gif": "image",
    "mp4": "video", "webm": "video", "ogg": "video",
}


def is_drive_url(url: str) -> bool:
    return "drive.google.com" in url or "docs.google.com" in url


def extract_file_id(url: str) -> Optional[str]:
    for pattern in _ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    # drive.google.com/open?id=<id>
    if "drive.google.com" in url:
        match = _OPEN_ID.search(url)
        if match:
            return match.group(1)
    return None


def preview_url(url: str) -> Optional[str]:
    file_id = extract_file_id(url)
    if not file_id:
        return None
    if "docs.google.com" in url:
        for kind in _DOCS_KINDS:
            if f"/{kind}/" in url:
                return f"https://docs.google.com/{kind}/d/{file_id}/preview"
        return None
    return f"https://drive.google.com/file/d/{file_id}/preview"


def detect_type(url: str) -> str:
    if "/document/" in url:
        return "document"
    if "/spreadsheets/" in url:
        return "spreadsheet"
    if "/presentation/" in url:
        return "presentation"
    path = url.split("?", 1)[0].split("#", 1)[0]
    extension = path.rsplit(".", 1)[-1].lower() if "." in path.rsplit("/", 1)[-1] else ""
    return _EXTENSIONS.get(extension, "file")
