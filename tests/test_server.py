"""Tests for core/server.py — argument validation, project routing, tool registration."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from core.client import OverleafGitClient
from core.config import AppConfig, GitConfig, ProjectConfig
from core.policy_engine import PolicyViolation
from core.server import OverleafTools, UnknownProjectError, build_server
from tools.latex_tool import Section


def _make_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        projects={
            "default": ProjectConfig(name="Thesis", project_id="p1", git_token="tok1"),
            "paper": ProjectConfig(name="Paper", project_id="p2", git_token="tok2"),
        },
        git=GitConfig(work_root=tmp_path, push_timeout=45.0),
    )


@pytest.fixture
def tools(tmp_path: Path) -> OverleafTools:
    return OverleafTools(_make_config(tmp_path))


class TestClientFor:
    def test_default_project(self, tools: OverleafTools, tmp_path: Path) -> None:
        client = tools.client_for()
        assert isinstance(client, OverleafGitClient)
        assert client.project_id == "p1"
        assert client.work_root == tmp_path.resolve()
        assert client.push_timeout == 45.0

    def test_named_project_is_cached(self, tools: OverleafTools) -> None:
        first = tools.client_for("paper")
        assert first.project_id == "p2"
        assert tools.client_for("paper") is first

    def test_unknown_project(self, tools: OverleafTools) -> None:
        with pytest.raises(UnknownProjectError, match="Unknown project 'nope'"):
            tools.client_for("nope")


class TestHandlers:
    @pytest.mark.asyncio
    async def test_list_projects_hides_tokens(self, tools: OverleafTools) -> None:
        text = await tools.list_projects()
        data = json.loads(text)
        assert [p["key"] for p in data] == ["default", "paper"]
        assert "tok1" not in text and "tok2" not in text

    @pytest.mark.asyncio
    async def test_read_file_validates_before_calling(self, tools: OverleafTools) -> None:
        with patch.object(OverleafGitClient, "read_file", AsyncMock()) as read:
            with pytest.raises(PolicyViolation):
                await tools.read_file("../etc/passwd")
        read.assert_not_called()

    @pytest.mark.asyncio
    async def test_read_file_trims_path(self, tools: OverleafTools) -> None:
        with patch.object(OverleafGitClient, "read_file", AsyncMock(return_value="body")) as read:
            assert await tools.read_file("  main.tex ", project_name="paper") == "body"
        read.assert_awaited_once_with("main.tex")

    @pytest.mark.asyncio
    async def test_list_files(self, tools: OverleafTools) -> None:
        with patch.object(OverleafGitClient, "list_files", AsyncMock(return_value=["a.tex", "b.tex"])) as ls:
            assert await tools.list_files() == "a.tex\nb.tex"
        ls.assert_awaited_once_with(".tex")

    @pytest.mark.asyncio
    async def test_list_files_empty(self, tools: OverleafTools) -> None:
        with patch.object(OverleafGitClient, "list_files", AsyncMock(return_value=[])):
            assert await tools.list_files("") == "No files found"

    @pytest.mark.asyncio
    async def test_write_file_checks_content(self, tools: OverleafTools) -> None:
        with patch.object(OverleafGitClient, "write_file", AsyncMock()) as write:
            with pytest.raises(PolicyViolation, match="exceeds maximum size"):
                await tools.write_file("a.tex", "x" * 1_000_001)
            assert await tools.write_file("a.tex", "ok") == "Wrote a.tex"
        write.assert_awaited_once_with("a.tex", "ok")

    @pytest.mark.asyncio
    async def test_delete_file(self, tools: OverleafTools) -> None:
        with patch.object(OverleafGitClient, "delete_file", AsyncMock()) as delete:
            assert await tools.delete_file("old.tex") == "Deleted old.tex"
        delete.assert_awaited_once_with("old.tex")

    @pytest.mark.asyncio
    async def test_commit_validates_message(self, tools: OverleafTools) -> None:
        with patch.object(OverleafGitClient, "commit", AsyncMock(return_value="done")) as commit:
            with pytest.raises(PolicyViolation):
                await tools.commit_changes("")
            assert await tools.commit_changes("  Fix typo ") == "done"
        commit.assert_awaited_once_with("Fix typo")

    @pytest.mark.asyncio
    async def test_push_and_status(self, tools: OverleafTools) -> None:
        with patch.object(OverleafGitClient, "push", AsyncMock(return_value="Push successful")), patch.object(
            OverleafGitClient, "status", AsyncMock(return_value="On branch master")
        ):
            assert await tools.push_changes() == "Push successful"
            assert await tools.status_summary("paper") == "On branch master"

    @pytest.mark.asyncio
    async def test_get_sections_previews(self, tools: OverleafTools) -> None:
        sections = [Section("section", "Intro", 0, "x" * 150), Section("section", "End", 200, "short")]
        with patch.object(OverleafGitClient, "get_sections", AsyncMock(return_value=sections)):
            data = json.loads(await tools.get_sections("main.tex"))
        assert data[0]["preview"] == "x" * 100 + "..."
        assert data[1] == {"type": "section", "title": "End", "preview": "short"}

    @pytest.mark.asyncio
    async def test_get_section_content(self, tools: OverleafTools) -> None:
        found = Section("section", "Intro", 0, "hello")
        with patch.object(OverleafGitClient, "get_section", AsyncMock(side_effect=[found, None])):
            assert await tools.get_section_content("main.tex", "Intro") == "hello"
            with pytest.raises(LookupError, match="not found"):
                await tools.get_section_content("main.tex", "Missing")


class TestBuildServer:
    @pytest.mark.asyncio
    async def test_registers_every_handler(self, tools: OverleafTools) -> None:
        server = build_server(tools)
        registered = {t.name for t in await server.list_tools()}
        assert registered == {
            "list_projects",
            "list_files",
            "read_file",
            "get_sections",
            "get_section_content",
            "write_file",
            "delete_file",
            "commit_changes",
            "push_changes",
            "status_summary",
        }
