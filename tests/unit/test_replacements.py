"""Tests for the package replacement registry and executor."""

import json

import pytest

from core.models import PackageReplacement
from core.replacements import (
    DEFAULT_REPLACEMENTS,
    PackageReplacementExecutor,
    PackageReplacementRegistry,
)


class TestPackageReplacementRegistry:
    """Test registry loading, saving and lookups."""

    def test_defaults_without_path(self):
        registry = PackageReplacementRegistry()
        registry.load()

        assert registry.lookup("node-sass").new_name == "sass"
        assert registry.lookup("request").requires_code_changes is True
        assert registry.lookup("express") is None
        assert registry.get_known_dead_urls() == ["github.com/substack/querystring"]
        assert {e.package_name for e in registry.get_architecture_incompatible()} == {"node-sass", "phantomjs"}

    def test_defaults_when_file_missing(self, tmp_path):
        registry = PackageReplacementRegistry(tmp_path / "missing.json")
        registry.load()
        assert len(registry.get_all()) == len(DEFAULT_REPLACEMENTS)

    def test_defaults_are_not_shared(self):
        first = PackageReplacementRegistry()
        first.load()
        first.get_all()[0].new_name = "changed"

        second = PackageReplacementRegistry()
        second.load()
        assert second.lookup("node-sass").new_name == "sass"

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_text(
            json.dumps(
                {
                    "version": "2.0.0",
                    "replacements": [
                        {
                            "old_name": "left-pad",
                            "new_name": "string.prototype.padstart",
                            "version_mapping": {"*": "^3.1.0"},
                            "requires_code_changes": True,
                        }
                    ],
                    "architecture_incompatible": [],
                    "known_dead_urls": [],
                }
            )
        )

        registry = PackageReplacementRegistry(path)
        registry.load()

        assert registry.version == "2.0.0"
        assert [r.old_name for r in registry.get_all()] == ["left-pad"]
        assert registry.lookup("node-sass") is None

    @pytest.mark.parametrize(
        "content",
        [
            "not json",
            json.dumps([]),
            json.dumps({"version": "1.0.0", "replacements": [{"old_name": "a"}]}),
            json.dumps(
                {
                    "version": "1.0.0",
                    "replacements": [
                        {"old_name": "", "new_name": "b", "version_mapping": {}, "requires_code_changes": False}
                    ],
                    "architecture_incompatible": [],
                    "known_dead_urls": [],
                }
            ),
        ],
    )
    def test_invalid_file_falls_back_to_defaults(self, tmp_path, content):
        path = tmp_path / "registry.json"
        path.write_text(content)

        registry = PackageReplacementRegistry(path)
        registry.load()

        assert registry.lookup("node-sass") is not None

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "registry.json"
        registry = PackageReplacementRegistry(path)
        registry.load()
        registry.add(PackageReplacement(old_name="node-sass", new_name="sass-embedded", version_mapping={"*": "^1.70.0"}))
        registry.save()

        saved = json.loads(path.read_text())
        assert "last_updated" in saved
        assert saved["replacements"][0]["old_name"] == "request"

        reloaded = PackageReplacementRegistry(path)
        reloaded.load()
        assert reloaded.lookup("node-sass").new_name == "sass-embedded"
        assert len(reloaded.get_all()) == len(DEFAULT_REPLACEMENTS)

    def test_save_without_path(self):
        registry = PackageReplacementRegistry()
        registry.load()
        with pytest.raises(ValueError):
            registry.save()


class TestPackageReplacementExecutor:
    """Test manifest rewriting for replacements."""

    @pytest.fixture
    def replacement_project(self, tmp_path):
        (tmp_path / "package.json").write_text(
            json.dumps(
                {
                    "name": "legacy-app",
                    "dependencies": {"node-sass": "^4.14.1", "express": "^4.18.0"},
                    "devDependencies": {"request": "2.88.2"},
                }
            )
        )
        return tmp_path

    @pytest.mark.asyncio
    async def test_renames_in_every_section(self, replacement_project):
        results = await PackageReplacementExecutor().execute_replacement(DEFAULT_REPLACEMENTS, replacement_project)

        data = json.loads((replacement_project / "package.json").read_text())
        assert data["dependencies"] == {"express": "^4.18.0", "sass": "^1.69.0"}
        assert data["devDependencies"] == {"node-fetch": "^3.3.0"}

        assert [(r.package_name, r.old_version, r.new_version) for r in results] == [
            ("sass", "^4.14.1", "^1.69.0"),
            ("node-fetch", "2.88.2", "^3.3.0"),
        ]
        assert [r.requires_manual_review for r in results] == [False, True]

    @pytest.mark.asyncio
    async def test_exact_version_mapping_wins(self, replacement_project):
        replacement = PackageReplacement(
            old_name="node-sass",
            new_name="sass",
            version_mapping={"^4.14.1": "^1.32.0", "*": "^1.69.0"},
        )
        results = await PackageReplacementExecutor().execute_replacement([replacement], replacement_project)
        assert results[0].new_version == "^1.32.0"

    @pytest.mark.asyncio
    async def test_keeps_version_without_mapping(self, replacement_project):
        replacement = PackageReplacement(old_name="express", new_name="fastify", version_mapping={})
        results = await PackageReplacementExecutor().execute_replacement([replacement], replacement_project)
        assert results[0].new_version == "^4.18.0"

    @pytest.mark.asyncio
    async def test_no_matches_leaves_file_untouched(self, replacement_project):
        before = (replacement_project / "package.json").read_bytes()
        replacement = PackageReplacement(old_name="gulp", new_name="vite", version_mapping={"*": "^5.0.0"})

        results = await PackageReplacementExecutor().execute_replacement([replacement], replacement_project)

        assert results == []
        assert (replacement_project / "package.json").read_bytes() == before
