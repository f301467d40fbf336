"""MCP server exposing Viberank to MCP-capable assistants over stdio.

Tools:

- ``get_usage``: run ccusage and summarize the local usage report.
- ``submit_to_viberank``: generate a fresh report and submit it.
- ``get_leaderboard``: top entries from the public leaderboard.
- ``get_profile``: a user's profile and submissions.

Every tool answers with a single JSON text block carrying ``success``.
"""

import asyncio
import json
import logging
import sys
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from . import cli
from .observability.logging import configure_logging

logger = logging.getLogger(__name__)

USAGE_CACHE_SECONDS = 5 * 60
DEFAULT_LEADERBOARD_LIMIT = 10
REQUEST_TIMEOUT = 30.0

TOOLS = [
    types.Tool(
        name="get_usage",
        description="Get current Claude Code usage statistics from ccusage",
        inputSchema={
            "type": "object",
            "properties": {
                "force_refresh": {
                    "type": "boolean",
                    "description": "Force refresh the usage data (bypass cache)",
                    "default": False,
                },
            },
        },
    ),
    types.Tool(
        name="submit_to_viberank",
        description="Submit Claude Code usage statistics to Viberank leaderboard",
        inputSchema={
            "type": "object",
            "properties": {
                "github_username": {
                    "type": "string",
                    "description": "GitHub username for the submission",
                },
                "auto_detect_username": {
                    "type": "boolean",
                    "description": "Automatically detect GitHub username from git config",
                    "default": True,
                },
            },
        },
    ),
    types.Tool(
        name="get_leaderboard",
        description="Get current Viberank leaderboard rankings",
        inputSchema={
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "description": "Number of top users to return",
                    "default": DEFAULT_LEADERBOARD_LIMIT,
                },
                "sort_by": {
                    "type": "string",
                    "enum": ["cost", "tokens"],
                    "default": "cost",
                },
            },
        },
    ),
    types.Tool(
        name="get_profile",
        description="Get Viberank profile for a specific user",
        inputSchema={
            "type": "object",
            "properties": {
                "username": {
                    "type": "string",
                    "description": "GitHub username to get profile for",
                },
            },
            "required": ["username"],
        },
    ),
]


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict):
        message = body.get("error") or body.get("detail")
        if message:
            return str(message)
    return f"Server returned {response.status_code} {response.reason_phrase}"


class ViberankMCPServer:
    """Wraps the CLI helpers as MCP tools."""

    def __init__(
        self,
        base_url: str = cli.DEFAULT_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._usage: Optional[dict] = None
        self._usage_fetched_at = 0.0
        self.server = Server("viberank-mcp")
        self._setup_handlers()

    def _setup_handlers(self):
        """Set up MCP protocol handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> List[types.Tool]:
            return TOOLS

        @self.server.call_tool()
        async def handle_call_tool(
            name: str, arguments: Optional[Dict[str, Any]] = None
        ) -> List[types.TextContent]:
            result = await self.dispatch(name, arguments or {})
            return [types.TextContent(type="text", text=json.dumps(result, indent=2))]

    async def dispatch(self, name: str, arguments: Dict[str, Any]) -> dict:
        logger.info("Tool call: %s", name)
        if name == "get_usage":
            return await self.get_usage(bool(arguments.get("force_refresh", False)))
        if name == "submit_to_viberank":
            return await self.submit(
                arguments.get("github_username"),
                bool(arguments.get("auto_detect_username", True)),
            )
        if name == "get_leaderboard":
            return await self.get_leaderboard(
                int(arguments.get("limit", DEFAULT_LEADERBOARD_LIMIT)),
                arguments.get("sort_by", "cost"),
            )
        if name == "get_profile":
            return await self.get_profile(arguments.get("username") or "")
        return {"success": False, "error": f"Unknown tool: {name}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            transport=self._transport,
            timeout=REQUEST_TIMEOUT,
        )

    async def _load_usage(self, force_refresh: bool) -> tuple:
        """Return (report, cached). Reports are reused for USAGE_CACHE_SECONDS."""
        now = time.monotonic()
        if (
            not force_refresh
            and self._usage is not None
            and now - self._usage_fetched_at < USAGE_CACHE_SECONDS
        ):
            return self._usage, True

        output = await asyncio.to_thread(cli.run_ccusage)
        self._usage = cli.parse_report(output)
        self._usage_fetched_at = now
        return self._usage, False

    async def get_usage(self, force_refresh: bool = False) -> dict:
        try:
            data, cached = await self._load_usage(force_refresh)
        except (OSError, RuntimeError, ValueError) as e:
            logger.warning("Failed to get usage data: %s", e)
            return {
                "success": False,
                "error": f"Failed to get usage data: {e}",
                "hint": "Make sure you have run Claude Code at least once.",
            }
        return {
            "success": True,
            "data": data,
            "cached": cached,
            "summary": cli.report_summary(data),
        }

    async def submit(
        self,
        github_username: Optional[str] = None,
        auto_detect_username: bool = True,
    ) -> dict:
        username = (github_username or "").strip()
        if not username and auto_detect_username:
            detected, _ = await asyncio.to_thread(cli.github_username_from_git)
            username = (detected or "").strip()
        if not username:
            return {
                "success": False,
                "error": "GitHub username is required. Please provide it or ensure git config is set.",
            }

        usage = await self.get_usage(force_refresh=True)
        if not usage["success"]:
            return {"success": False, "error": "Failed to get usage data before submission."}

        try:
            async with self._client() as client:
                response = await client.post(
                    "/api/submit",
                    json=usage["data"],
                    headers=cli.submit_headers(username),
                )
        except httpx.HTTPError as e:
            logger.error("Submission for %s failed: %s", username, e)
            return {"success": False, "error": f"Submission failed: {e}"}

        if response.status_code >= 400:
            return {"success": False, "error": _error_message(response)}

        result = response.json()
        logger.info("Submitted usage for %s (%s)", username, result.get("action"))
        return {
            "success": True,
            "message": f"Successfully submitted to Viberank for {username}!",
            "profileUrl": result.get("profileUrl"),
            "submissionId": result.get("submissionId"),
            "flaggedForReview": result.get("flaggedForReview", False),
            "summary": usage["summary"],
        }

    async def get_leaderboard(
        self, limit: int = DEFAULT_LEADERBOARD_LIMIT, sort_by: str = "cost"
    ) -> dict:
        try:
            async with self._client() as client:
                response = await client.get(
                    "/api/leaderboard", params={"limit": limit, "sortBy": sort_by}
                )
        except httpx.HTTPError as e:
            return {"success": False, "error": f"Failed to get leaderboard: {e}"}

        if response.status_code >= 400:
            return {"success": False, "error": _error_message(response)}

        entries = [
            {
                "rank": position,
                "username": entry.get("githubUsername") or entry["username"],
                "totalCost": entry["totalCost"],
                "totalTokens": entry["totalTokens"],
                "dateRange": entry.get("dateRange"),
                "verified": entry.get("verified", False),
            }
            for position, entry in enumerate(response.json(), start=1)
        ]
        return {"success": True, "sortBy": sort_by, "leaderboard": entries}

    async def get_profile(self, username: str) -> dict:
        username = username.strip()
        if not username:
            return {"success": False, "error": "Username is required."}

        try:
            async with self._client() as client:
                response = await client.get(f"/api/profile/{quote(username, safe='')}")
        except httpx.HTTPError as e:
            return {"success": False, "error": f"Failed to get profile: {e}"}

        if response.status_code == 404:
            return {"success": False, "error": f"No profile found for {username}."}
        if response.status_code >= 400:
            return {"success": False, "error": _error_message(response)}

        return {
            "success": True,
            "username": username,
            "profileUrl": f"{self.base_url}/profile/{username}",
            "profile": response.json(),
        }

    async def run_stdio(self):
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


def main():
    """Entry point for the ``viberank-mcp`` script."""
    # stdout carries the protocol
    configure_logging(stream=sys.stderr)
    server = ViberankMCPServer()
    logger.info("Viberank MCP server starting (%s)", server.base_url)
    asyncio.run(server.run_stdio())


if __name__ == "__main__":
    main()
