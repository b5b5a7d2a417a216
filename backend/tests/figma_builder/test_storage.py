"""Tests for figma_builder.pipeline.storage."""

from pathlib import Path

import pytest

from figma_builder.pipeline.errors import ValidationError
from figma_builder.pipeline.storage import save_component


class TestSaveComponent:

    def test_writes_under_project_dir(self, tmp_path):
        path = save_component("demo", "Button", "export {}", base_dir=str(tmp_path))

        assert Path(path) == tmp_path / "demo" / "Button.tsx"
        assert Path(path).read_text(encoding="utf-8") == "export {}"

    def test_strips_extension(self, tmp_path):
        path = save_component("demo", "Button.tsx", "x", base_dir=str(tmp_path))
        assert Path(path).parts[-2:] == ("demo", "Button.tsx")

    def test_overwrites(self, tmp_path):
        save_component("demo", "Button", "old", base_dir=str(tmp_path))
        path = save_component("demo", "Button", "new", base_dir=str(tmp_path))
        assert Path(path).read_text(encoding="utf-8") == "new"

    def test_defaults_to_generated_dir(self, generated_dir):
        path = save_component("demo", "Card", "x")
        assert Path(path) == generated_dir / "demo" / "Card.tsx"

    @pytest.mark.parametrize(
        "project,component,match",
        [
            ("", "Button", "Missing projectName"),
            ("demo", "  ", "Missing componentName"),
            ("../etc", "Button", "Invalid projectName"),
            ("demo", "a/b", "Invalid componentName"),
            ("demo", "..\\x", "Invalid componentName"),
        ],
    )
    def test_rejects_unsafe_names(self, tmp_path, project, component, match):
        with pytest.raises(ValidationError, match=match):
            save_component(project, component, "x", base_dir=str(tmp_path))
        assert not any(tmp_path.iterdir())
