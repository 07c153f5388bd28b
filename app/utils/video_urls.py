from __future__ import annotations

import re

_DRIVE_FILE_ID = re.compile(r"/d/([a-zA-Z0-9_-]+)")
DRIVE_THUMBNAIL_TEMPLATE = "https://drive.google.com/thumbnail?id={file_id}&sz=w400-h300"


def is_google_drive_url(url: str) -> bool:
  return "drive.google.com" in url or "docs.google.com" in url


def extract_google_drive_id(url: str) -> str | None:
  """Pull the file id out of `.../d/<id>/...` style Drive links."""
  match = _DRIVE_FILE_ID.search(url)
  return match.group(1) if match else None


def get_google_drive_thumbnail(url: str) -> str | None:
  file_id = extract_google_drive_id(url)
  if not file_id:
    return None
  return DRIVE_THUMBNAIL_TEMPLATE.format(file_id=file_id)


def format_duration(seconds: int | float) -> str:
  """Render seconds as `M:SS`, or `H:MM:SS` once past an hour."""
  total = int(seconds)
  hours, remainder = divmod(total, 3600)
  minutes, secs = divmod(remainder, 60)
  if hours > 0:
    return f"{hours}:{minutes:02d}:{secs:02d}"
  return f"{minutes}:{secs:02d}"
