"""
Code module

Generation, review and explanation go through the AI registry. Git tools run
``git`` in the project directory with asyncio subprocesses. Once a project has
been detected its description is exposed as a session context signal.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..infra.logging import get_logger
from ..providers import AIProviderRegistry
from ..stores import DEFAULT_MODEL, PreferenceStore
from ..types import (
    AIMessage, AIRequest, ContextSignal, ContextSnapshot, Intent, ModuleConfig, ModuleResult,
    QuickAction, ToolDefinition, ToolResult,
)

logger = get_logger(__name__)

GIT_TIMEOUT = 15.0
DIFF_LIMIT = 8000

PROMPTS = {
    "code.generate": "Write {language} code for the following description. Reply with code only.",
    "code.review": "Review the following code. List bugs, risks and concrete improvements.",
    "code.explain": "Explain what the following code does, step by step.",
    "code.suggest_commit": "Write a concise conventional commit message for this diff.",
}

FRAMEWORKS = (("next", "Next.js"), ("react", "React"), ("vue", "Vue"), ("svelte", "Svelte"))


class GenerateArgs(BaseModel):
    description: str
    language: str = "python"


class CodeArgs(BaseModel):
    code: str


class PathArgs(BaseModel):
    path: str = Field(..., description="Project directory")


class ProjectInfo(BaseModel):
    path: str
    name: str
    type: str = "unknown"
    framework: str | None = None
    git_branch: str | None = None


async def run_git(path: str, *args: str) -> tuple[bool, str]:
    try:
        proc = await asyncio.create_subprocess_exec(
            "git", *args, cwd=path,
            stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return False, str(e)
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=GIT_TIMEOUT)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return False, f"git {args[0]} timed out"
    if proc.returncode != 0:
        return False, stderr.decode(errors="replace").strip()
    return True, stdout.decode(errors="replace")


class CodeModule:
    id = "code"
    name = "Code"
    description = "Code generation, review, debugging, and git integration"
    version = "1.0.0"
    triggers = [
        "code", "function", "bug", "debug", "git", "commit", "review", "refactor", "test",
        "programming",
    ]

    def __init__(
        self, ai: AIProviderRegistry, preferences: PreferenceStore, default_model: str = DEFAULT_MODEL,
    ) -> None:
        self._ai = ai
        self._prefs = preferences
        self._default_model = default_model
        self.config = ModuleConfig()
        self.project: ProjectInfo | None = None

    async def init(self, config: ModuleConfig) -> None:
        self.config = config

    async def destroy(self) -> None:
        self.project = None

    def can_handle(self, intent: Intent) -> bool:
        raw = intent.raw.lower()
        return any(t in raw for t in self.triggers)

    async def handle(self, intent: Intent, snapshot: ContextSnapshot) -> ModuleResult:
        return ModuleResult(
            success=True,
            message="Code module ready. Use tools for code generation, review, git operations, etc.",
            data={"project": self.project.model_dump() if self.project else None},
            ui="panel",
        )

    @property
    def model(self) -> str:
        return self.config.settings.get("model") or self._prefs.get("default_model", self._default_model)

    def get_tools(self) -> list[ToolDefinition]:
        def tool(name: str, description: str, schema: type[BaseModel]) -> ToolDefinition:
            return ToolDefinition(name=name, description=description, input_schema=schema.model_json_schema())

        return [
            tool("code.generate", "Generate code from a description", GenerateArgs),
            tool("code.review", "Review code for issues", CodeArgs),
            tool("code.explain", "Explain code or project structure", CodeArgs),
            tool("code.git_status", "Get git status of current project", PathArgs),
            tool("code.git_diff", "Get current git changes", PathArgs),
            tool("code.suggest_commit", "Generate a commit message from the current diff", PathArgs),
            tool("code.detect_project", "Detect project type, framework and git branch", PathArgs),
        ]

    async def execute_tool(self, name: str, args: dict[str, Any]) -> ToolResult:
        try:
            if name == "code.generate":
                a = GenerateArgs.model_validate(args)
                return await self._ask(PROMPTS[name].format(language=a.language), a.description)
            if name in ("code.review", "code.explain"):
                return await self._ask(PROMPTS[name], CodeArgs.model_validate(args).code)
            if name == "code.git_status":
                return self._git_result(await run_git(PathArgs.model_validate(args).path, "status", "--porcelain"))
            if name == "code.git_diff":
                return self._git_result(await run_git(PathArgs.model_validate(args).path, "diff"))
            if name == "code.suggest_commit":
                return await self._suggest_commit(PathArgs.model_validate(args).path)
            if name == "code.detect_project":
                info = await self.detect_project(PathArgs.model_validate(args).path)
                return ToolResult(success=True, data=info.model_dump())
        except ValidationError as e:
            return ToolResult(success=False, error=f"Invalid arguments for {name}: {e}")
        return ToolResult(success=False, error=f"Unknown tool: {name}")

    async def _ask(self, system: str, content: str) -> ToolResult:
        try:
            response = await self._ai.chat(
                AIRequest(model=self.model, system=system, messages=[AIMessage(role="user", content=content)])
            )
        except Exception as e:
            logger.warning("code_tool_failed", model=self.model, error=str(e))
            return ToolResult(success=False, error=str(e))
        return ToolResult(success=True, data=response.content)

    @staticmethod
    def _git_result(outcome: tuple[bool, str]) -> ToolResult:
        ok, output = outcome
        return ToolResult(success=True, data=output) if ok else ToolResult(success=False, error=output)

    async def _suggest_commit(self, path: str) -> ToolResult:
        ok, diff = await run_git(path, "diff", "--staged")
        if ok and not diff.strip():
            ok, diff = await run_git(path, "diff")
        if not ok:
            return ToolResult(success=False, error=diff)
        if not diff.strip():
            return ToolResult(success=False, error="No changes to commit")
        return await self._ask(PROMPTS["code.suggest_commit"], diff[:DIFF_LIMIT])

    async def detect_project(self, path: str) -> ProjectInfo:
        root = Path(path)
        info = ProjectInfo(path=path, name=root.name)

        package_json = root / "package.json"
        if package_json.is_file():
            info.type = "node"
            try:
                pkg = json.loads(package_json.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                pkg = {}
            info.name = pkg.get("name") or info.name
            deps = pkg.get("dependencies") or {}
            info.framework = next((label for dep, label in FRAMEWORKS if dep in deps), None)
        elif (root / "pyproject.toml").is_file() or (root / "setup.py").is_file():
            info.type = "python"

        ok, branch = await run_git(path, "branch", "--show-current")
        if ok:
            info.git_branch = branch.strip() or None

        self.project = info
        logger.info("project_detected", path=path, type=info.type)
        return info

    def get_context_signals(self) -> list[ContextSignal]:
        if self.project is None:
            return []
        return [
            ContextSignal(layer="session", key="code.project", value=self.project.model_dump(), source=self.id)
        ]

    def get_quick_actions(self) -> list[QuickAction]:
        def show_status() -> None:
            logger.info("quick_action", action="code.git_status", project=self.project and self.project.path)

        return [
            QuickAction(
                id="code.git_status",
                label="Git Status",
                module_id=self.id,
                action=show_status,
                icon="git-branch",
                description="Show git status",
            )
        ]
