"""
Tests for the external link audit (no network access)
"""
import os
from unittest.mock import Mock, patch

import pytest
import requests
from audit_post_links import audit_links, check_link, collect_links, main
from post_format import display_name


def test_check_link_head_ok():
    with patch("audit_post_links.requests.head", return_value=Mock(status_code=200)) as head, \
            patch("audit_post_links.requests.get") as get:
        assert check_link("https://example.com") == ("https://example.com", 200)
    head.assert_called_once()
    get.assert_not_called()


def test_check_link_falls_back_to_get():
    with patch("audit_post_links.requests.head", return_value=Mock(status_code=405)), \
            patch("audit_post_links.requests.get", return_value=Mock(status_code=200)) as get:
        assert check_link("https://example.com") == ("https://example.com", 200)
    get.assert_called_once()


def test_check_link_network_error():
    with patch("audit_post_links.requests.head", side_effect=requests.ConnectionError("refused")):
        url, status = check_link("https://example.com")
    assert url == "https://example.com"
    assert status == "refused"


def test_collect_links(write_post, tmp_path):
    a = write_post(body="See https://example.com/a\n", name="a.md")
    b = write_post(body="Also [here](https://example.com/a) and `https://example.com/code`\n", name="b.md")
    bad = tmp_path / "bad.md"
    bad.write_text("no front matter https://example.com/skipped\n")

    links = collect_links([a, b, bad])
    assert links == {"https://example.com/a": [f"{display_name(a)}:6", f"{display_name(b)}:6"]}


def test_audit_links_reports_broken(write_post):
    post = write_post(body="https://example.com/ok https://example.com/gone https://down.example\n")
    statuses = {
        "https://example.com/ok": 200,
        "https://example.com/gone": 404,
        "https://down.example": "timed out",
    }

    with patch("audit_post_links.check_link", side_effect=lambda url: (url, statuses[url])):
        broken = audit_links([post], workers=2)

    where = [f"{display_name(post)}:6"]
    assert sorted(broken) == [
        ("https://down.example", "timed out", where),
        ("https://example.com/gone", 404, where),
    ]


def test_main_exit_code(write_post, tmp_path, capsys):
    write_post(body="https://example.com/gone\n")

    with patch("audit_post_links.check_link", side_effect=lambda url: (url, 404)):
        with pytest.raises(SystemExit) as exc:
            main([str(tmp_path)])

    assert exc.value.code == 1
    out = capsys.readouterr().out
    assert "Broken/Suspect Links: 1" in out
    assert "[X] Status 404 | https://example.com/gone" in out


def test_main_all_healthy(write_post, tmp_path, capsys):
    write_post(body="https://example.com/ok\n")

    with patch("audit_post_links.check_link", side_effect=lambda url: (url, 200)):
        main([str(tmp_path)])

    assert "All links are healthy" in capsys.readouterr().out


def test_collect_links_tells_same_named_posts_apart(write_post):
    first = write_post(body="https://example.com/a\n", name="index.md", subdir="one")
    second = write_post(body="https://example.com/a\n", name="index.md", subdir="two")

    where = collect_links([first, second])["https://example.com/a"]
    assert len(set(where)) == 2
    assert where[0].endswith(f"{os.path.join('one', 'index.md')}:6")
    assert where[1].endswith(f"{os.path.join('two', 'index.md')}:6")
