"""
Tests for the static file resolver and the GET route.

Covers default document mapping, MIME lookup, traversal containment,
symlink escapes and dotfile blocking.
"""

import os

import pytest

from static_files import (
    DEFAULT_MIME_TYPE,
    StaticFileForbidden,
    StaticFileNotFound,
    StaticFileResolver,
    guess_media_type,
)
from tests.conftest import INDEX_HTML


@pytest.fixture
def resolver(static_root):
    return StaticFileResolver(static_root, "product-generator-orange.html")


class TestResolve:

    def test_root_maps_to_index(self, resolver, static_root):
        found = resolver.resolve("/")
        assert found.path == (static_root / "product-generator-orange.html").resolve()
        assert found.media_type == "text/html; charset=utf-8"

    def test_nested_file(self, resolver):
        found = resolver.resolve("/assets/style.css")
        assert found.media_type == "text/css; charset=utf-8"

    def test_extension_lookup_ignores_case(self, resolver):
        assert resolver.resolve("/logo.PNG").media_type == "image/png"

    def test_unknown_extension_is_binary(self, resolver):
        assert resolver.resolve("/data.bin").media_type == DEFAULT_MIME_TYPE

    def test_missing_file(self, resolver):
        with pytest.raises(StaticFileNotFound):
            resolver.resolve("/nope.html")

    def test_directory_is_not_served(self, resolver):
        with pytest.raises(StaticFileNotFound):
            resolver.resolve("/assets")

    def test_embedded_nul_is_not_found(self, resolver):
        with pytest.raises(StaticFileNotFound):
            resolver.resolve("/app.js\x00.png")

    @pytest.mark.parametrize("path", [
        "/../secret.txt",
        "/../../secret.txt",
        "/assets/../../secret.txt",
        "..\\secret.txt",
        "/%2e%2e/secret.txt",
        "//../secret.txt",
    ])
    def test_traversal_never_leaves_root(self, resolver, static_root, path):
        try:
            found = resolver.resolve(path)
        except (StaticFileNotFound, StaticFileForbidden):
            return
        assert found.path.is_relative_to(static_root.resolve())

    def test_parent_segments_are_clamped_to_root(self, resolver, static_root):
        found = resolver.resolve("/../../assets/style.css")
        assert found.path == (static_root / "assets" / "style.css").resolve()

    def test_dotfiles_are_forbidden(self, resolver):
        with pytest.raises(StaticFileForbidden):
            resolver.resolve("/.env")
        with pytest.raises(StaticFileForbidden):
            resolver.resolve("/assets/.git/config")

    def test_symlink_escape_is_forbidden(self, resolver, static_root, tmp_path):
        os.symlink(tmp_path / "secret.txt", static_root / "link.txt")
        with pytest.raises(StaticFileForbidden):
            resolver.resolve("/link.txt")

    def test_symlinked_directory_escape_is_forbidden(self, resolver, static_root, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "page.html").write_text("x", encoding="utf-8")
        os.symlink(outside, static_root / "linked")
        with pytest.raises(StaticFileForbidden):
            resolver.resolve("/linked/page.html")

    def test_symlink_inside_root_is_served(self, resolver, static_root):
        os.symlink(static_root / "app.js", static_root / "alias.js")
        assert resolver.resolve("/alias.js").path == (static_root / "app.js").resolve()


def test_guess_media_type_table():
    from pathlib import Path

    assert guess_media_type(Path("a.jpeg")) == "image/jpeg"
    assert guess_media_type(Path("a.svg")) == "image/svg+xml"
    assert guess_media_type(Path("a.ico")) == "image/x-icon"
    assert guess_media_type(Path("README")) == DEFAULT_MIME_TYPE


class TestStaticRoute:

    def test_index_is_byte_identical(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.content == INDEX_HTML
        assert response.headers["content-type"] == "text/html; charset=utf-8"

    def test_javascript_content_type(self, client):
        response = client.get("/app.js")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/javascript; charset=utf-8"

    def test_missing_file_is_404_without_paths(self, client, static_root):
        response = client.get("/missing.html")
        assert response.status_code == 404
        assert response.text == "Not Found"
        assert str(static_root) not in response.text

    def test_dotenv_is_forbidden(self, client):
        response = client.get("/.env")
        assert response.status_code == 403
        assert response.text == "Forbidden"
        assert "leak" not in response.text

    def test_get_on_proxy_path_goes_to_static(self, client):
        assert client.get("/api/text").status_code == 404
