"""Tests for the MCP tool server."""

import json
from unittest.mock import MagicMock, patch

import httpx
from mcp import types

from viberank.mcp_server import ViberankMCPServer


def _ccusage(usage, returncode=0):
    return MagicMock(
        returncode=returncode,
        stdout=json.dumps(usage.single("2024-01-01")) if returncode == 0 else "",
        stderr="" if returncode == 0 else "ccusage: no data",
    )


def _server(handler=None):
    transport = httpx.MockTransport(handler) if handler else None
    return ViberankMCPServer(base_url="https://viberank.test", transport=transport)


class TestProtocolHandlers:
    async def test_lists_tools(self):
        server = _server()
        handler = server.server.request_handlers[types.ListToolsRequest]

        result = await handler(types.ListToolsRequest(method="tools/list"))

        names = [tool.name for tool in result.root.tools]
        assert names == ["get_usage", "submit_to_viberank", "get_leaderboard", "get_profile"]

    async def test_call_tool_returns_json_text(self):
        def handler(request):
            return httpx.Response(404, json={"error": "Profile not found"})

        server = _server(handler)
        call = server.server.request_handlers[types.CallToolRequest]

        result = await call(types.CallToolRequest(
            method="tools/call",
            params={"name": "get_profile", "arguments": {"username": "ghost"}},
        ))

        body = json.loads(result.root.content[0].text)
        assert body == {"success": False, "error": "No profile found for ghost."}

    async def test_unknown_tool(self):
        result = await _server().dispatch("delete_everything", {})

        assert result == {"success": False, "error": "Unknown tool: delete_everything"}


class TestGetUsage:
    async def test_report_is_cached(self, usage):
        server = _server()

        with patch("viberank.cli.subprocess.run", return_value=_ccusage(usage)) as run:
            first = await server.get_usage()
            second = await server.get_usage()

        assert run.call_count == 1
        assert first["cached"] is False
        assert second["cached"] is True
        assert first["summary"] == {"totalCost": "$0", "totalTokens": "1,500", "daysTracked": 1}

    async def test_force_refresh(self, usage):
        server = _server()

        with patch("viberank.cli.subprocess.run", return_value=_ccusage(usage)) as run:
            await server.get_usage()
            result = await server.get_usage(force_refresh=True)

        assert run.call_count == 2
        assert result["cached"] is False

    async def test_ccusage_failure(self, usage):
        with patch("viberank.cli.subprocess.run", return_value=_ccusage(usage, returncode=1)):
            result = await _server().get_usage()

        assert result["success"] is False
        assert result["error"] == "Failed to get usage data: ccusage: no data"
        assert "hint" in result


class TestSubmit:
    async def test_submits_fresh_report(self, usage):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["user"] = request.headers["X-GitHub-User"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "success": True,
                "submissionId": "s1",
                "action": "created",
                "flaggedForReview": False,
                "profileUrl": "https://viberank.test/profile/alice",
            })

        with patch("viberank.cli.subprocess.run", return_value=_ccusage(usage)):
            result = await _server(handler).submit("alice")

        assert result["success"] is True
        assert result["submissionId"] == "s1"
        assert result["profileUrl"] == "https://viberank.test/profile/alice"
        assert seen["path"] == "/api/submit"
        assert seen["user"] == "alice"
        assert seen["body"]["totals"]["totalTokens"] == 1500

    async def test_detects_username(self, usage):
        def handler(request):
            assert request.headers["X-GitHub-User"] == "octocat"
            return httpx.Response(200, json={"submissionId": "s1"})

        with patch("viberank.cli.github_username_from_git", return_value=("octocat", True)), \
                patch("viberank.cli.subprocess.run", return_value=_ccusage(usage)):
            result = await _server(handler).submit()

        assert result["success"] is True

    async def test_username_required(self):
        result = await _server().submit(None, auto_detect_username=False)

        assert result["success"] is False
        assert result["error"].startswith("GitHub username is required")

    async def test_server_rejection(self, usage):
        def handler(request):
            return httpx.Response(400, json={"error": "Token totals don't match for 2024-01-01."})

        with patch("viberank.cli.subprocess.run", return_value=_ccusage(usage)):
            result = await _server(handler).submit("alice")

        assert result == {"success": False, "error": "Token totals don't match for 2024-01-01."}

    async def test_no_usage_data(self, usage):
        with patch("viberank.cli.subprocess.run", return_value=_ccusage(usage, returncode=1)):
            result = await _server().submit("alice")

        assert result == {"success": False, "error": "Failed to get usage data before submission."}


class TestReadTools:
    async def test_leaderboard_is_ranked(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[
                {"username": "alice", "githubUsername": "alice-gh", "totalCost": 9.0,
                 "totalTokens": 900, "verified": True},
                {"username": "bob", "totalCost": 4.0, "totalTokens": 400},
            ])

        result = await _server(handler).get_leaderboard(limit=2, sort_by="tokens")

        assert seen["params"] == {"limit": "2", "sortBy": "tokens"}
        assert [e["rank"] for e in result["leaderboard"]] == [1, 2]
        assert [e["username"] for e in result["leaderboard"]] == ["alice-gh", "bob"]
        assert result["leaderboard"][1]["verified"] is False

    async def test_leaderboard_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await _server(handler).get_leaderboard()

        assert result["success"] is False
        assert result["error"].startswith("Failed to get leaderboard")

    async def test_profile(self):
        def handler(request):
            assert request.url.path == "/api/profile/alice"
            return httpx.Response(200, json={"username": "alice", "submissions": []})

        result = await _server(handler).get_profile("alice")

        assert result["success"] is True
        assert result["profileUrl"] == "https://viberank.test/profile/alice"
        assert result["profile"]["username"] == "alice"
