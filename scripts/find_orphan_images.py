import argparse
import sys
from pathlib import Path

from post_format import POSTS_DIR, FrontMatterError, display_name, list_posts, load_post
from post_refs import IMAGE_SUFFIXES, is_external, post_images, resolve_image


def referenced_images(posts, content_root=None):
    """Resolved images used by posts, plus the posts that could not be read."""
    referenced = set()
    skipped = []
    for path in posts:
        try:
            post = load_post(path)
        except (FrontMatterError, OSError) as e:
            print(f"  ⚠ Skipping {display_name(path)}: {e}")
            skipped.append(path)
            continue
        for target, _ in post_images(post):
            if target and not is_external(target):
                referenced.add(resolve_image(path, target, content_root).resolve())
    return referenced, skipped


def find_orphans(posts_dir, images_dir=None, content_root=None):
    """Image files that no post references, plus the posts that were skipped.

    Images are only reliable orphans when skipped is empty.
    """
    posts_dir = Path(posts_dir)
    if images_dir:
        image_dirs = [Path(images_dir)]
    else:
        image_dirs = [d for d in posts_dir.rglob("images") if d.is_dir()]

    referenced, skipped = referenced_images(list_posts(posts_dir), content_root)

    orphans = set()
    for d in image_dirs:
        for f in d.rglob("*"):
            if f.is_file() and f.suffix.lower() in IMAGE_SUFFIXES and f.resolve() not in referenced:
                orphans.add(f)
    return sorted(orphans), skipped


def main(argv=None):
    parser = argparse.ArgumentParser(description="Find images no post references")
    parser.add_argument("posts_dir", nargs="?", default=str(POSTS_DIR))
    parser.add_argument("--images-dir", help="Only scan this directory (default: every images/ under posts_dir)")
    parser.add_argument("--root", help="Content root for /absolute image paths")
    parser.add_argument("--delete", action="store_true", help="Delete orphaned images")
    args = parser.parse_args(argv)

    orphans, skipped = find_orphans(args.posts_dir, args.images_dir, args.root)
    print(f"Images not referenced by any post: {len(orphans)}")
    for o in orphans:
        print(f" - {o}")

    if args.delete and orphans:
        if skipped:
            print(f"✗ Not deleting: {len(skipped)} posts could not be read, fix them first")
            sys.exit(1)
        for o in orphans:
            o.unlink()
        print(f"Deleted {len(orphans)} images")


if __name__ == "__main__":
    main()
