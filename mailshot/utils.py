import re
from datetime import datetime, timezone
from pathlib import Path

FILENAME_TIME_FORMAT = "%Y-%m-%d-%H-%M-%S"
FRACTION_RE = re.compile(r"\.(\d+)")


def parse_received_at(value: str) -> datetime:
    text = (value or "").strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits.
    text = FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: str) -> str:
    return parse_received_at(value).strftime(FILENAME_TIME_FORMAT)


def safe_filename_part(text: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in text)


def screenshot_path(output_dir: Path, received_at: str, email_id: str, ext: str = "png") -> Path:
    stem = format_timestamp(received_at)
    path = output_dir / f"{stem}.{ext}"
    if path.exists():
        path = output_dir / f"{stem}-{safe_filename_part(email_id)}.{ext}"
    return path

