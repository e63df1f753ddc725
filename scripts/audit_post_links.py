import argparse
import os
import sys
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import requests

from post_format import POSTS_DIR, FrontMatterError, display_name, list_posts, load_post
from post_refs import extract_links

LINK_TIMEOUT = float(os.getenv("LINK_TIMEOUT", "10"))
LINK_WORKERS = int(os.getenv("LINK_WORKERS", "10"))

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
}


def check_link(url, timeout=LINK_TIMEOUT):
    """(url, HTTP status), or (url, error text) when the request fails.

    GET is retried when HEAD returns an error status.
    """
    try:
        for method in (requests.head, requests.get):
            response = method(url, headers=HEADERS, timeout=timeout, allow_redirects=True)
            if response.status_code < 400:
                break
        return url, response.status_code
    except requests.RequestException as e:
        return url, str(e)


def collect_links(paths):
    """Map each external URL to the 'post:line' places that use it."""
    links = defaultdict(list)
    for path in paths:
        try:
            post = load_post(path)
        except (FrontMatterError, OSError) as e:
            print(f"  ⚠ Skipping {display_name(path)}: {e}")
            continue
        for url, rel_line in extract_links(post["body"]):
            links[url].append(f"{display_name(path)}:{post['body_line'] + rel_line - 1}")
    return dict(links)


def check_links(links, workers=LINK_WORKERS):
    """Broken entries of a collect_links() result as (url, status, where)."""
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(check_link, links))

    return [
        (url, status, links[url])
        for url, status in results
        if not isinstance(status, int) or status >= 400
    ]


def audit_links(paths, workers=LINK_WORKERS):
    return check_links(collect_links(paths), workers=workers)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Check external links in blog posts")
    parser.add_argument("paths", nargs="*", help=f"Post files or directories (default: {POSTS_DIR})")
    parser.add_argument("--workers", type=int, default=LINK_WORKERS)
    args = parser.parse_args(argv)

    posts = []
    for raw in args.paths or [str(POSTS_DIR)]:
        posts.extend(list_posts(Path(raw)))

    print(f"Reading {len(posts)} posts for links...")
    links = collect_links(posts)
    total = len(links)
    print(f"Found {total} unique URLs. Validating in parallel...")

    broken = check_links(links, workers=args.workers) if links else []

    print("\n--- LINK AUDIT REPORT ---")
    print(f"Total Unique Links: {total}")
    print(f"Broken/Suspect Links: {len(broken)}")

    if broken:
        for url, status, where in broken:
            print(f"  [X] Status {status} | {url} ({', '.join(where)})")
        sys.exit(1)
    print("  ✓ All links are healthy!")


if __name__ == "__main__":
    main()
