import pytest

VALID_META = "title: Timeouts and cancellation\ndate: 2019-04-02\nauthor: Jane Doe\n"


@pytest.fixture
def write_post(tmp_path):
    """Write a post under tmp_path and return its path."""

    def _write(body="Some text.\n", meta=VALID_META, name="post.md", subdir=None):
        folder = tmp_path / subdir if subdir else tmp_path
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / name
        path.write_text(f"---\n{meta}---\n{body}", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_image(tmp_path):
    def _write(rel_path):
        path = tmp_path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x89PNG\r\n\x1a\n")
        return path

    return _write
