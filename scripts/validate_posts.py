#!/usr/bin/env python3
"""
Validate blog posts (front matter + Markdown body).

Checks:
- File starts with a closed '---' front matter block of valid YAML
- Required fields (title, date, author) are present and non-empty strings
- date parses and is not in the future
- Every local image (body and cover image) exists at its relative path
- Code fences are closed
- No unknown front matter keys

Usage:
    python3 scripts/validate_posts.py
    python3 scripts/validate_posts.py content/timeouts.md
    python3 scripts/validate_posts.py --strict  # treat warnings as errors
    python3 scripts/validate_posts.py --root content  # for /absolute image paths
"""

import argparse
import os
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from post_format import (
    KNOWN_FIELDS,
    POSTS_DIR,
    REQUIRED_FIELDS,
    FrontMatterError,
    display_name,
    list_posts,
    load_post,
    parse_date,
)
from post_refs import IMAGE_SUFFIXES, find_unclosed_fence, is_external, post_images, resolve_image

MAX_LISTED = 30


def _inside(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
        return True
    except ValueError:
        return False


def check_meta(meta: dict, prefix: str, now: datetime) -> tuple[list[str], list[str]]:
    errors = []
    warnings = []

    for field in REQUIRED_FIELDS:
        value = meta.get(field)
        if value is None:
            errors.append(f"{prefix} Missing '{field}' field")
        elif field == "date":
            if isinstance(value, bool) or not isinstance(value, (str, date)):
                errors.append(f"{prefix} 'date' should be a date, got {type(value).__name__}")
            elif isinstance(value, str) and not value.strip():
                errors.append(f"{prefix} Empty 'date' field")
            else:
                parsed = parse_date(value)
                if parsed is None:
                    errors.append(f"{prefix} Unparseable date: {value!r}")
                elif parsed > now:
                    warnings.append(f"{prefix} date is in the future: {parsed.date()}")
        elif not isinstance(value, str):
            errors.append(f"{prefix} '{field}' should be string, got {type(value).__name__}")
        elif not value.strip():
            errors.append(f"{prefix} Empty '{field}' field")

    unknown = sorted(str(k) for k in meta if k not in KNOWN_FIELDS)
    if unknown:
        warnings.append(f"{prefix} Unknown front matter keys: {unknown}")

    return errors, warnings


def check_images(post: dict, name: str, content_root: Optional[Path]) -> tuple[list[str], list[str]]:
    errors = []
    warnings = []
    path = post["path"]

    for target, line in post_images(post):
        prefix = f"[{name}:{line}]" if line else f"[{name}]"
        if not target:
            warnings.append(f"{prefix} Image with empty path")
            continue
        if is_external(target):
            continue

        if target.startswith("/"):
            warnings.append(f"{prefix} Absolute image path: {target}")

        resolved = resolve_image(path, target, content_root)
        if content_root and not _inside(resolved, Path(content_root)):
            errors.append(f"{prefix} Image outside content root: {target}")
            continue

        if resolved.suffix.lower() not in IMAGE_SUFFIXES:
            warnings.append(f"{prefix} Unsupported image type: {target}")

        if not resolved.exists():
            errors.append(f"{prefix} Image not found: {target}")
        elif resolved.is_dir():
            errors.append(f"{prefix} Image path is a directory: {target}")
        elif resolved.name not in os.listdir(resolved.parent):
            warnings.append(f"{prefix} Image path case differs from file on disk: {target}")

    return errors, warnings


def validate_post(
    path: Path, content_root: Optional[Path] = None, now: Optional[datetime] = None
) -> tuple[list[str], list[str]]:
    """Validate a single post. Returns (errors, warnings)."""
    now = now or datetime.now()
    name = display_name(path)
    prefix = f"[{name}]"

    try:
        post = load_post(path)
    except FrontMatterError as e:
        where = f"[{name}:{e.line}]" if e.line else prefix
        return [f"{where} {e}"], []
    except OSError as e:
        return [f"{prefix} Cannot read file: {e.strerror or e}"], []

    errors, warnings = check_meta(post["meta"], prefix, now)

    if not post["body"].strip():
        warnings.append(f"{prefix} Empty body")

    img_errors, img_warnings = check_images(post, name, content_root)
    errors.extend(img_errors)
    warnings.extend(img_warnings)

    fence_line = find_unclosed_fence(post["body"])
    if fence_line is not None:
        errors.append(f"[{name}:{post['body_line'] + fence_line - 1}] Unclosed code fence")

    return errors, warnings


def collect_posts(paths: list[str]) -> list[tuple[Path, Optional[Path]]]:
    """Expand CLI paths into (post, implied content root) pairs."""
    posts = []
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            posts.extend((post, p) for post in list_posts(p))
        elif p.exists():
            posts.append((p, None))
        else:
            print(f"⚠ No such file or directory: {raw}")
    return posts


def print_issues(title: str, marker: str, issues: list[str]):
    print(f"\n{marker} {len(issues)} {title}:")
    for issue in issues[:MAX_LISTED]:
        print(f"  {issue}")
    if len(issues) > MAX_LISTED:
        print(f"  ... and {len(issues) - MAX_LISTED} more")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Validate blog posts")
    parser.add_argument("paths", nargs="*", help=f"Post files or directories (default: {POSTS_DIR})")
    parser.add_argument("--strict", action="store_true", help="Treat warnings as errors")
    parser.add_argument("--root", default=os.getenv("CONTENT_ROOT"), help="Content root for /absolute image paths")
    parser.add_argument("--quiet", action="store_true", help="Only print failing posts")
    args = parser.parse_args(argv)

    posts = collect_posts(args.paths or [str(POSTS_DIR)])
    if not posts:
        print("✗ No posts found")
        sys.exit(2)

    all_errors = []
    all_warnings = []

    print(f"Validating {len(posts)} posts...")
    print()

    for path, implied_root in posts:
        root = Path(args.root) if args.root else implied_root
        errors, warnings = validate_post(path, content_root=root)
        all_errors.extend(errors)
        all_warnings.extend(warnings)

        issue_count = len(errors) + (len(warnings) if args.strict else 0)
        if issue_count > 0:
            print(f"✗ {display_name(path)}: {len(errors)} errors, {len(warnings)} warnings")
        elif warnings and not args.quiet:
            print(f"⚠ {display_name(path)}: {len(warnings)} warnings")
        elif not args.quiet:
            print(f"✓ {display_name(path)}")

    print()
    print("=" * 50)

    if all_warnings:
        print_issues("WARNINGS", "⚠", all_warnings)
    if all_errors:
        print_issues("ERRORS", "✗", all_errors)

    total_issues = len(all_errors) + (len(all_warnings) if args.strict else 0)
    if total_issues == 0:
        print(f"\n✓ ALL VALIDATIONS PASSED ({len(all_warnings)} warnings)")
        sys.exit(0)
    else:
        print(f"\n✗ VALIDATION FAILED: {len(all_errors)} errors, {len(all_warnings)} warnings")
        sys.exit(1)


if __name__ == "__main__":
    main()
