"""
Load blog posts stored as YAML front matter followed by a Markdown body.

    ---
    title: Timeouts and cancellation
    date: 2019-04-02
    author: Jane Doe
    ---
    Body text...
"""

import os
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import yaml

SCRIPT_DIR = Path(__file__).parent.resolve()
POSTS_DIR = Path(os.getenv("POSTS_DIR", SCRIPT_DIR / ".." / "content"))

FRONT_MATTER_DELIM = "---"
FRONT_MATTER_END = ("---", "...")
POST_SUFFIXES = (".md", ".markdown")

REQUIRED_FIELDS = ("title", "date", "author")
KNOWN_FIELDS = set(REQUIRED_FIELDS) | {
    "tags", "description", "draft", "slug", "image", "categories", "summary",
}

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%d/%m/%Y",
]


class FrontMatterError(ValueError):
    """Post text does not start with a well-formed front matter block."""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.line = line


def split_front_matter(text: str) -> tuple[str, str, int]:
    """Split post text into (front matter, body, first body line)."""
    text = text.lstrip("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONT_MATTER_DELIM:
        raise FrontMatterError("Missing front matter (file must start with '---')", line=1)

    for i, line in enumerate(lines[1:], start=1):
        if line.rstrip() in FRONT_MATTER_END:
            meta_text = "".join(lines[1:i])
            body = "".join(lines[i + 1:])
            return meta_text, body, i + 2

    raise FrontMatterError("Unclosed front matter (no closing '---')", line=1)


def parse_front_matter(meta_text: str) -> dict:
    try:
        meta = yaml.safe_load(meta_text)
    except yaml.YAMLError as e:
        line = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            # +2: opening delimiter plus 0-based mark
            line = mark.line + 2
        problem = getattr(e, "problem", None) or str(e)
        raise FrontMatterError(f"Invalid YAML in front matter: {problem}", line=line) from e
    except ValueError as e:
        # e.g. "date: 2019-02-30" matches the timestamp tag but is not a real date
        raise FrontMatterError(f"Invalid value in front matter: {e}") from e

    if meta is None:
        return {}
    if not isinstance(meta, dict):
        raise FrontMatterError(
            f"Front matter must be a mapping, got {type(meta).__name__}", line=2
        )
    return meta


def load_post(path: Path) -> dict:
    """Read a post file into {path, meta, body, body_line}."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise FrontMatterError(f"File is not valid UTF-8: {e.reason}") from e

    meta_text, body, body_line = split_front_matter(text)
    return {
        "path": path,
        "meta": parse_front_matter(meta_text),
        "body": body,
        "body_line": body_line,
    }


def parse_date(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    value = value.strip().strip("'\"").strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def list_posts(posts_dir: Path) -> list[Path]:
    """All post files under posts_dir, sorted."""
    posts_dir = Path(posts_dir)
    if posts_dir.is_file():
        return [posts_dir]
    return sorted(
        p for p in posts_dir.rglob("*")
        if p.is_file() and p.suffix.lower() in POST_SUFFIXES
    )


def display_name(path: Path) -> str:
    """Path relative to the working directory when possible."""
    path = Path(path)
    try:
        return str(path.resolve().relative_to(Path.cwd().resolve()))
    except ValueError:
        return str(path)
