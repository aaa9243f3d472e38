"""
Unit tests for template loading and rendering.
"""

from datetime import datetime, timezone

import pytest

from guestbook.errors import RenderError, TemplateLoadError
from guestbook.store import Message
from guestbook.templates import PageData, Templates, format_timestamp


class TestLoad:
    """Templates.load() fails fast on anything unusable."""

    def test_shipped_templates(self, templates: Templates):
        assert templates.names == ["about.html", "base.html", "index.html"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(TemplateLoadError, match="not found"):
            Templates.load(tmp_path / "missing")

    def test_no_templates(self, tmp_path):
        (tmp_path / "notes.txt").write_text("not a template")

        with pytest.raises(TemplateLoadError, match="no \\*.html"):
            Templates.load(tmp_path)

    def test_syntax_error(self, tmp_path):
        (tmp_path / "index.html").write_text("{% if %}")

        with pytest.raises(TemplateLoadError) as exc_info:
            Templates.load(tmp_path)

        assert "index.html" in str(exc_info.value)

    def test_accepts_str_path(self, tmp_path):
        (tmp_path / "page.html").write_text("{{ title }}")

        assert Templates.load(str(tmp_path)).names == ["page.html"]


class TestRender:
    """Templates.render() and the page context."""

    def test_context_names(self, tmp_path):
        (tmp_path / "page.html").write_text(
            "{{ title }}|{{ flash }}|{{ messages | length }}|{{ now | timestamp }}"
        )
        templates = Templates.load(tmp_path)
        now = datetime(2026, 10, 18, 9, 5, 0, tzinfo=timezone.utc)
        message = Message(id=1, author="a", content="b", created=now)

        out = templates.render("page.html", PageData(title="T", flash="F", messages=[message], now=now))

        assert out == "T|F|1|2026-10-18 09:05:00 UTC"

    def test_autoescape(self, tmp_path):
        (tmp_path / "page.html").write_text("{{ title }}")

        out = Templates.load(tmp_path).render("page.html", PageData(title="<i>&</i>"))

        assert out == "&lt;i&gt;&amp;&lt;/i&gt;"

    def test_unknown_template(self, templates: Templates):
        with pytest.raises(RenderError) as exc_info:
            templates.render("missing.html", PageData(title="x"))

        assert exc_info.value.template == "missing.html"

    def test_undefined_name_is_render_error(self, tmp_path):
        (tmp_path / "page.html").write_text("{{ nope }}")

        with pytest.raises(RenderError) as exc_info:
            Templates.load(tmp_path).render("page.html", PageData(title="x"))

        assert exc_info.value.cause is not None


def test_format_timestamp_naive():
    """Naive datetimes render without a zone suffix."""
    assert format_timestamp(datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02 03:04:05"
