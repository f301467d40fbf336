"""
CLI for submitting Claude Code usage to Viberank.

Generates a usage report with ccusage (or reads an existing one), shows a
summary, and posts it to the leaderboard.
"""

import json
import math
import re
import subprocess
import sys
from pathlib import Path
from typing import Optional, Tuple

import httpx
import typer
from rich.console import Console

from . import __version__

app = typer.Typer(help="Viberank submission tool")
console = Console()

DEFAULT_URL = "https://www.viberank.app"
DEFAULT_FILE = "cc.json"
CCUSAGE_COMMAND = ["npx", "ccusage@latest", "--json"]
GITHUB_REMOTE = re.compile(r"github\.com[:/]([^/]+)/")

SUBMIT_TIMEOUT = 30.0

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1


def _git_config(*args: str) -> Optional[str]:
    try:
        result = subprocess.run(
            ["git", "config", *args],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    value = result.stdout.strip()
    return value or None


def github_username_from_git() -> Tuple[Optional[str], bool]:
    """Return (username, from_remote).

    Prefers the owner of a GitHub origin remote and falls back to git
    user.name, which may be a real name rather than a GitHub login.
    """
    remote = _git_config("--get", "remote.origin.url")
    if remote:
        match = GITHUB_REMOTE.search(remote)
        if match:
            return match.group(1), True
    return _git_config("user.name"), False


def detect_github_username() -> Optional[str]:
    """GitHub username from the origin remote, falling back to git user.name."""
    name, from_remote = github_username_from_git()
    if from_remote:
        console.print(f"[dim]Detected GitHub username from repository: {name}[/]")
    elif name:
        console.print(
            "[yellow]Warning: Using git config user.name which might be your real name, "
            "not GitHub username[/]"
        )
    return name


def run_ccusage() -> str:
    """Run ccusage and return its JSON output."""
    result = subprocess.run(CCUSAGE_COMMAND, capture_output=True, text=True)
    if result.returncode != 0:
        raise RuntimeError(result.stderr.strip() or "ccusage exited with an error")
    return result.stdout


def generate_report(path: Path):
    """Run ccusage and write its JSON output to ``path``."""
    with console.status("Generating usage data with ccusage..."):
        output = run_ccusage()
    path.write_text(output, encoding="utf-8")
    console.print(f"[green]✓[/] Generated {path.name} successfully")


def parse_report(text: str) -> dict:
    """Parse a ccusage report and check the fields the summary relies on."""
    data = json.loads(text)
    if not isinstance(data, dict) or "totals" not in data or "daily" not in data:
        raise ValueError("Missing 'daily' or 'totals' field")
    totals = data["totals"]
    if not isinstance(totals, dict) or not isinstance(data["daily"], list):
        raise ValueError("Malformed 'daily' or 'totals' field")
    for key in ("totalCost", "totalTokens"):
        value = totals.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError(f"Missing or invalid totals.{key}")
    return data


def load_report(path: Path) -> dict:
    return parse_report(path.read_text(encoding="utf-8"))


def report_summary(data: dict) -> dict:
    totals = data["totals"]
    return {
        "totalCost": f"${round(totals['totalCost']):,}",
        "totalTokens": f"{totals['totalTokens']:,}",
        "daysTracked": len(data["daily"]),
    }


def print_summary(data: dict):
    summary = report_summary(data)
    console.print("\nSummary:")
    console.print(f"  Total Cost: [green]{summary['totalCost']}[/]")
    console.print(f"  Total Tokens: [green]{summary['totalTokens']}[/]")
    console.print(f"  Days Tracked: [green]{summary['daysTracked']}[/]\n")


def print_troubleshooting(status_code: int):
    if status_code == 400:
        console.print("\n[yellow]Troubleshooting tips:[/]")
        console.print("[yellow]- Ensure you're using the latest version of ccusage[/]")
        console.print("[yellow]- Try regenerating your cc.json file: npx ccusage@latest --json > cc.json[/]")
        console.print("[yellow]- Check that your cc.json file is valid JSON[/]")
    elif status_code == 413:
        console.print(
            "\n[yellow]Your usage data is too large. "
            "Consider submitting data for a shorter time period.[/]"
        )
    elif status_code == 429:
        console.print("\n[yellow]You are submitting too often. Please wait a minute and retry.[/]")
    elif status_code >= 500:
        console.print(
            "\n[yellow]The server is experiencing issues. Please try again in a few moments.[/]"
        )


def submit_headers(username: str) -> dict:
    return {"X-GitHub-User": username, "X-CLI-Version": __version__}


def submit_report(url: str, username: str, data: dict) -> httpx.Response:
    return httpx.post(
        f"{url.rstrip('/')}/api/submit",
        json=data,
        headers=submit_headers(username),
        timeout=SUBMIT_TIMEOUT,
    )


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Viberank CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Viberank - Use --help to see available commands")


@app.command()
def submit(
    file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        help="Existing ccusage JSON report. Generated with npx ccusage if omitted.",
    ),
    username: Optional[str] = typer.Option(
        None,
        "--username",
        "-u",
        help="GitHub username. Detected from git if omitted.",
    ),
    url: str = typer.Option(DEFAULT_URL, "--url", help="Viberank server URL"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompts"),
):
    """Submit your Claude Code usage to the Viberank leaderboard."""
    console.print(f"[bold yellow]Viberank Submission Tool v{__version__}[/]\n")

    if username is None:
        detected = detect_github_username()
        if yes and detected:
            username = detected
        else:
            username = typer.prompt("GitHub username", default=detected or None)
    username = (username or "").strip()
    if not username:
        console.print("[red]Username is required. Exiting.[/]")
        sys.exit(EXIT_CODE_FAIL)

    path = file or Path(DEFAULT_FILE)
    try:
        if file is None:
            generate_report(path)
        data = load_report(path)
    except (OSError, RuntimeError) as e:
        console.print(f"[red]Failed to prepare {path}:[/] {e}")
        console.print("[yellow]\nMake sure you have run Claude Code at least once.[/]")
        sys.exit(EXIT_CODE_FAIL)
    except ValueError as e:
        console.print(f"[red]Error reading {path}:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    print_summary(data)

    if not yes and not typer.confirm("Submit to Viberank leaderboard?", default=True):
        console.print("[yellow]Submission cancelled.[/]")
        sys.exit(EXIT_CODE_OK)

    try:
        with console.status("Submitting to Viberank..."):
            response = submit_report(url, username, data)
    except httpx.HTTPError as e:
        console.print(f"[red]Failed to reach Viberank:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    if response.status_code >= 400:
        try:
            message = response.json().get("error") or response.json().get("detail")
        except ValueError:
            message = None
        message = message or f"Server returned {response.status_code} {response.reason_phrase}"
        console.print("[red]Failed to submit to Viberank[/]")
        console.print(f"[red]Error:[/] {message}")
        print_troubleshooting(response.status_code)
        sys.exit(EXIT_CODE_FAIL)

    result = response.json()
    console.print("[green]✓[/] Successfully submitted to Viberank!")
    if result.get("flaggedForReview"):
        console.print("[yellow]Your submission was flagged for review:[/]")
        for reason in result.get("flagReasons", []):
            console.print(f"[yellow]  - {reason}[/]")
    console.print(f"\nView your profile at: [green]{result.get('profileUrl')}[/]\n")


if __name__ == "__main__":
    app()
