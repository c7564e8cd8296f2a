"""MCP tool surface: validate arguments, pick the project's client, call it.

One OverleafGitClient is kept per configured project so repeated calls reuse
the same working copy and the same per-project lock.

No ``from __future__ import annotations`` here: FastMCP reads the handler
annotations at runtime to build each tool's input schema.
"""

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from core.client import OverleafGitClient
from core.config import AppConfig
from core.policy_engine import PolicyEngine

logger = logging.getLogger(__name__)

SERVER_NAME = "overleaf-git"


class UnknownProjectError(KeyError):
    """Raised when a request names a project that is not configured."""

    def __str__(self) -> str:
        return f"Unknown project '{self.args[0]}'"


class OverleafTools:
    def __init__(self, config: AppConfig):
        self.config = config
        self.policy = PolicyEngine(config.policy)
        self._clients: dict[str, OverleafGitClient] = {}

    def client_for(self, project_name: str | None = None) -> OverleafGitClient:
        key = project_name or self.config.default_project
        if key not in self.config.projects:
            raise UnknownProjectError(key)
        if key not in self._clients:
            project = self.config.projects[key]
            git = self.config.git
            self._clients[key] = OverleafGitClient(
                project.git_token,
                project.project_id,
                git.work_root,
                host=git.host,
                username=git.username,
                commit_timeout=git.commit_timeout,
                push_timeout=git.push_timeout,
            )
        return self._clients[key]

    # ── tool handlers ─────────────────────────────────────────────

    async def list_projects(self) -> str:
        """List the configured projects."""
        projects = [
            {"key": key, "name": p.name, "projectId": p.project_id}
            for key, p in self.config.projects.items()
        ]
        return json.dumps(projects, indent=2)

    async def list_files(self, extension: str | None = ".tex", project_name: str | None = None) -> str:
        """List files in the project, optionally filtered by extension (default .tex)."""
        ext = self.policy.check_extension(extension)
        files = await self.client_for(project_name).list_files(ext)
        return "\n".join(files) if files else "No files found"

    async def read_file(self, file_path: str, project_name: str | None = None) -> str:
        """Read a file from the project."""
        path = self.policy.check_file_path(file_path)
        return await self.client_for(project_name).read_file(path)

    async def get_sections(self, file_path: str, project_name: str | None = None) -> str:
        """List the sectioning commands of a LaTeX file with a short preview of each."""
        path = self.policy.check_file_path(file_path)
        sections = await self.client_for(project_name).get_sections(path)
        summary: list[dict[str, Any]] = []
        for s in sections:
            preview = s.content[:100] + ("..." if len(s.content) > 100 else "")
            summary.append({"type": s.type, "title": s.title, "preview": preview})
        return json.dumps(summary, indent=2)

    async def get_section_content(
        self, file_path: str, section_title: str, project_name: str | None = None
    ) -> str:
        """Return the full content of one section, by exact title."""
        path = self.policy.check_file_path(file_path)
        section = await self.client_for(project_name).get_section(path, section_title)
        if section is None:
            raise LookupError(f"Section '{section_title}' not found in {path}")
        return section.content

    async def write_file(self, file_path: str, content: str, project_name: str | None = None) -> str:
        """Write a file into the working copy (not committed)."""
        path = self.policy.check_file_path(file_path)
        body = self.policy.check_content(content)
        await self.client_for(project_name).write_file(path, body)
        return f"Wrote {path}"

    async def delete_file(self, file_path: str, project_name: str | None = None) -> str:
        """Delete a file from the working copy (not committed)."""
        path = self.policy.check_file_path(file_path)
        await self.client_for(project_name).delete_file(path)
        return f"Deleted {path}"

    async def commit_changes(self, message: str, project_name: str | None = None) -> str:
        """Stage all changes and commit them."""
        msg = self.policy.check_commit_message(message)
        return await self.client_for(project_name).commit(msg)

    async def push_changes(self, project_name: str | None = None) -> str:
        """Push local commits to Overleaf."""
        return await self.client_for(project_name).push()

    async def status_summary(self, project_name: str | None = None) -> str:
        """Show git status of the working copy."""
        return await self.client_for(project_name).status()

    def handlers(self) -> list[Any]:
        return [
            self.list_projects,
            self.list_files,
            self.read_file,
            self.get_sections,
            self.get_section_content,
            self.write_file,
            self.delete_file,
            self.commit_changes,
            self.push_changes,
            self.status_summary,
        ]


def build_server(tools: OverleafTools, name: str = SERVER_NAME) -> FastMCP:
    """Create a FastMCP server exposing every handler as a tool."""
    mcp = FastMCP(name)
    for handler in tools.handlers():
        mcp.add_tool(handler, name=handler.__name__, description=handler.__doc__)
    logger.info("server '%s' ready with %d tools", name, len(tools.handlers()))
    return mcp
