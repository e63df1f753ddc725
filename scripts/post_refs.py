"""
Find image and link references in a post body.

Only references visible to the reader count: anything inside fenced code
blocks or inline code spans is ignored, since posts quote code that often
contains strings looking like paths or URLs.
"""

import os
import re
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
INLINE_CODE_RE = re.compile(r"(`+)(.+?)\1")

IMAGE_INLINE_RE = re.compile(
    r"!\[([^\]]*)\]\(\s*(<[^>]*>|[^)\s]*)(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*\)"
)
IMAGE_REF_RE = re.compile(r"!\[([^\]]*)\]\[([^\]]*)\]")
IMAGE_SHORTCUT_RE = re.compile(r"!\[([^\]]+)\](?![\[(])")
REF_DEF_RE = re.compile(r"^ {0,3}\[([^\]]+)\]:\s*(<[^>]*>|\S+)", re.MULTILINE)
HTML_IMG_RE = re.compile(r"<img\b[^>]*?\bsrc\s*=\s*[\"']([^\"']*)[\"']", re.IGNORECASE)

URL_RE = re.compile(r"https?://[^\s<>\"'\]\}`]+")
URL_TRAILING = ".,;:"

EXTERNAL_PREFIXES = ("http:", "https:", "//", "data:", "mailto:")

IMAGE_SUFFIXES = {
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".avif", ".bmp", ".ico",
}


def _scan_fences(body: str) -> tuple[list[bool], Optional[int]]:
    """Per-line in-code flags plus the line of a fence left open, if any."""
    flags = []
    fence = None
    fence_line = None
    for lineno, line in enumerate(body.splitlines(), start=1):
        if fence is None:
            m = FENCE_RE.match(line)
            if m:
                fence = m.group(1)
                fence_line = lineno
                flags.append(True)
            else:
                flags.append(False)
            continue

        flags.append(True)
        stripped = line.strip()
        if (
            stripped
            and set(stripped) == {fence[0]}
            and len(stripped) >= len(fence)
            and len(line) - len(line.lstrip(" ")) <= 3
        ):
            fence = None
            fence_line = None

    return flags, fence_line


def strip_code(body: str) -> str:
    """Blank out code blocks and inline code, keeping line numbers intact."""
    flags, _ = _scan_fences(body)
    out = []
    for line, in_code in zip(body.splitlines(), flags):
        if in_code:
            out.append("")
        else:
            out.append(INLINE_CODE_RE.sub(lambda m: " " * len(m.group(0)), line))
    return "\n".join(out)


def find_unclosed_fence(body: str) -> Optional[int]:
    _, fence_line = _scan_fences(body)
    return fence_line


def _line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _clean_target(target: str) -> str:
    target = target.strip()
    if target.startswith("<") and target.endswith(">"):
        target = target[1:-1].strip()
    return target


def extract_images(body: str) -> list[tuple[str, int]]:
    """Image targets referenced by the body as (target, line)."""
    text = strip_code(body)
    definitions = {
        m.group(1).strip().lower(): _clean_target(m.group(2))
        for m in REF_DEF_RE.finditer(text)
    }

    found = []
    for m in IMAGE_INLINE_RE.finditer(text):
        found.append((m.start(), _clean_target(m.group(2))))

    for m in IMAGE_REF_RE.finditer(text):
        ref_id = (m.group(2) or m.group(1)).strip().lower()
        if ref_id in definitions:
            found.append((m.start(), definitions[ref_id]))

    for m in IMAGE_SHORTCUT_RE.finditer(text):
        ref_id = m.group(1).strip().lower()
        if ref_id in definitions:
            found.append((m.start(), definitions[ref_id]))

    for m in HTML_IMG_RE.finditer(text):
        found.append((m.start(), m.group(1).strip()))

    found.sort(key=lambda item: item[0])
    return [(target, _line_of(text, offset)) for offset, target in found]


def extract_links(body: str) -> list[tuple[str, int]]:
    """Absolute http(s) URLs in the body as (url, line). Duplicates are kept."""
    text = strip_code(body)
    links = []
    for m in URL_RE.finditer(text):
        links.append((_trim_url(m.group(0)), _line_of(text, m.start())))
    return links


def _trim_url(url: str) -> str:
    """Drop sentence punctuation and a ')' that closes surrounding Markdown."""
    while True:
        url = url.rstrip(URL_TRAILING)
        if url.endswith(")") and url.count(")") > url.count("("):
            url = url[:-1]
            continue
        return url


def post_images(post: dict) -> list[tuple[str, Optional[int]]]:
    """Cover image from front matter plus body images, as (target, file line).

    The cover image has no line number.
    """
    images = []
    cover = post["meta"].get("image")
    if isinstance(cover, str):
        images.append((cover.strip(), None))
    for target, rel_line in extract_images(post["body"]):
        images.append((target, post["body_line"] + rel_line - 1))
    return images


def is_external(target: str) -> bool:
    return target.lower().startswith(EXTERNAL_PREFIXES)


def resolve_image(post_path: Path, target: str, content_root: Optional[Path] = None) -> Path:
    """Filesystem path for a local image target."""
    post_path = Path(post_path)
    target = unquote(re.split(r"[?#]", target, maxsplit=1)[0])

    if target.startswith("/"):
        root = Path(content_root) if content_root else post_path.parent.parent
        return Path(os.path.normpath(root / target.lstrip("/")))
    return Path(os.path.normpath(post_path.parent / target))
