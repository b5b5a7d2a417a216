"""Tests for figma_builder.pipeline.url_parser."""

import pytest

from figma_builder.pipeline.models import ParsedReference
from figma_builder.pipeline.url_parser import normalize_node_id, parse_figma_url

KEY = "AbCdEfGhIjKlMnOpQrStUv"


class TestParseFigmaUrl:

    @pytest.mark.parametrize("kind", ["file", "design", "proto", "fig", "community"])
    def test_accepts_every_path_kind(self, kind):
        ref = parse_figma_url(f"https://www.figma.com/{kind}/{KEY}/Some-Name")
        assert ref == ParsedReference(file_id=KEY, target_node_id=None)

    def test_extracts_target_node_in_api_form(self):
        ref = parse_figma_url(f"https://www.figma.com/design/{KEY}/Kit?node-id=12-34")
        assert ref.file_id == KEY
        assert ref.target_node_id == "12:34"

    def test_percent_encoded_node_id(self):
        ref = parse_figma_url(f"https://www.figma.com/file/{KEY}/Kit?node-id=12%3A34&t=abc")
        assert ref.target_node_id == "12:34"

    def test_key_at_end_of_path(self):
        assert parse_figma_url(f"https://figma.com/design/{KEY}").file_id == KEY

    def test_subdomain_allowed(self):
        assert parse_figma_url(f"https://embed.figma.com/design/{KEY}/x") is not None

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   ",
            "not a url",
            f"ftp://www.figma.com/design/{KEY}/x",
            f"https://www.example.com/design/{KEY}/x",
            f"https://notfigma.com/design/{KEY}/x",
            "https://www.figma.com/design/short/x",
            f"https://www.figma.com/design/{KEY}XYZ/x",
            f"https://www.figma.com/board/{KEY}/x",
            "https://www.figma.com/",
        ],
    )
    def test_rejects_invalid(self, raw):
        assert parse_figma_url(raw) is None

    def test_empty_node_id_is_ignored(self):
        ref = parse_figma_url(f"https://www.figma.com/design/{KEY}/x?node-id=")
        assert ref is not None
        assert ref.target_node_id is None


class TestNormalizeNodeId:

    def test_dash_to_colon(self):
        assert normalize_node_id("16650-538") == "16650:538"

    def test_idempotent(self):
        assert normalize_node_id("16650:538") == "16650:538"
