"""Command line interface for cac."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .config import (
    PROJECT_DIR_NAME,
    init_config_file,
    load_config,
    project_config_path,
    resolve_config_path,
    update_config_worktree,
)
from .core import AutoCommitWorkflow, RunContext, RunResult
from .exceptions import AutoCommitError
from .llm import LLMClient

RESET = "\033[0m"
BOLD = "\033[1m"
CYAN = "\033[96m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"

TOOLS = ("manual", "opencode", "codex", "claude")
CODEX_TURN_COMPLETE = "agent-turn-complete"


def run_log_path(worktree: str | Path, when: Optional[datetime] = None) -> Path:
    stamp = (when or datetime.now()).strftime("%Y%m%d-%H%M%S-%f")[:-3]
    return Path(worktree) / PROJECT_DIR_NAME / f"run-{stamp}.log"


def format_result(result: RunResult) -> list[str]:
    """Plain-text lines describing a run; also used for hook run logs."""
    if result.skipped:
        return [f"Skipped: {result.reason or 'unknown'}"]
    lines = [f"Committed: {len(result.committed)}"]
    for record in result.committed:
        lines.append(f"- {record.hash[:12]} {record.message}")
    lines.append(f"Pushed: {'yes' if result.pushed else 'no'}")
    if result.token_usage is not None:
        usage = result.token_usage
        lines.append(
            f"AI tokens: {usage.total_tokens} (prompt: {usage.prompt_tokens}, "
            f"completion: {usage.completion_tokens})"
        )
    if result.ai_warning:
        lines.append(
            f"AI warning: {result.ai_warning} "
            "(fallback message used; verify AI configuration)"
        )
    return lines


class CLI:
    """Argument parsing and dispatch."""

    def __init__(self) -> None:
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="cac",
            description="Auto-commit the changes left by an AI coding agent turn",
        )
        parser.add_argument("--debug", action="store_true", help="Verbose logging")
        sub = parser.add_subparsers(dest="command")

        run = sub.add_parser("run", help="Stage, describe and commit changes")
        run.add_argument("--tool", choices=TOOLS, default="manual")
        run.add_argument("--worktree")
        run.add_argument("--config")
        run.add_argument("--session-id")
        run.add_argument("--event-json", help="Hook event payload as JSON")
        run.add_argument(
            "--event-stdin", action="store_true", help="Read the hook event from stdin"
        )

        status = sub.add_parser("status", help="Show the effective configuration")
        status.add_argument("--worktree")
        status.add_argument("--config")

        init = sub.add_parser("init", help="Write a default project config")
        init.add_argument("--worktree")
        init.add_argument("--config")

        set_wt = sub.add_parser("set-worktree", help="Point the config at a worktree")
        set_wt.add_argument("path")
        set_wt.add_argument("--config")

        ai_test = sub.add_parser("ai-test", help="Check the configured AI provider")
        ai_test.add_argument("--worktree")
        ai_test.add_argument("--config")

        sub.add_parser("version", help="Print the version")
        return parser

    def run(self, args: Optional[list[str]] = None) -> int:
        parsed = self.parser.parse_args(args)
        if parsed.debug:
            logging.basicConfig(
                level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
            )
        handlers = {
            "run": self._cmd_run,
            "status": self._cmd_status,
            "init": self._cmd_init,
            "set-worktree": self._cmd_set_worktree,
            "ai-test": self._cmd_ai_test,
            "version": self._cmd_version,
        }
        handler = handlers.get(parsed.command)
        if handler is None:
            self.parser.print_help()
            return 0
        try:
            return handler(parsed)
        except AutoCommitError as e:
            print(f"{RED}Error: {e}{RESET}", file=sys.stderr)
            return 1
        except json.JSONDecodeError as e:
            print(f"{RED}Error: invalid event JSON: {e}{RESET}", file=sys.stderr)
            return 1

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def _read_event(self, parsed: argparse.Namespace) -> Any:
        event = None
        if parsed.event_json:
            event = json.loads(parsed.event_json)
        if parsed.event_stdin:
            text = sys.stdin.read().strip()
            if text:
                event = json.loads(text)
        return event

    def _cmd_run(self, parsed: argparse.Namespace) -> int:
        event = self._read_event(parsed)
        if parsed.tool == "codex" and isinstance(event, dict):
            event_type = event.get("type")
            if event_type and event_type != CODEX_TURN_COMPLETE:
                print(f"Skipped: codex event {event_type}")
                return 0

        config = load_config(explicit_path=parsed.config, worktree=parsed.worktree)
        context = RunContext(
            tool=parsed.tool,
            worktree=parsed.worktree,
            session_id=parsed.session_id,
            event=event,
        )
        result = asyncio.run(AutoCommitWorkflow(config).run(context))
        lines = format_result(result)
        self._print_result(result, lines)

        if parsed.tool != "manual":
            log_path = run_log_path(result.worktree)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            header = f"tool={parsed.tool} session={parsed.session_id or '-'}"
            log_path.write_text("\n".join([header] + lines) + "\n", encoding="utf-8")
        return 0

    def _print_result(self, result: RunResult, lines: list[str]) -> None:
        if result.skipped:
            print(f"{YELLOW}{lines[0]}{RESET}")
            return
        for line in lines:
            if line.startswith("- "):
                print(f"{GREEN}{line}{RESET}")
            elif line.startswith("AI warning:"):
                print(f"{YELLOW}{line}{RESET}")
            else:
                print(line)

    def _cmd_status(self, parsed: argparse.Namespace) -> int:
        path = resolve_config_path(parsed.config, parsed.worktree)
        config = load_config(explicit_path=parsed.config, worktree=parsed.worktree)
        print(f"{CYAN}Config path:{RESET} {path}")
        print(f"{CYAN}Worktree:{RESET} {config.worktree}")
        print(f"{CYAN}Commit mode:{RESET} {config.commit.mode}")
        ai_state = "enabled" if config.ai.enabled else "disabled"
        print(f"{CYAN}AI message:{RESET} {ai_state} ({config.ai.model})")
        push_state = "enabled" if config.push.enabled else "disabled"
        print(f"{CYAN}Auto push:{RESET} {push_state}")
        return 0

    def _cmd_init(self, parsed: argparse.Namespace) -> int:
        worktree = Path(parsed.worktree or Path.cwd()).resolve()
        target = Path(parsed.config) if parsed.config else project_config_path(worktree)
        init_config_file(target, worktree)
        print(f"{GREEN}Initialized config: {target}{RESET}")
        return 0

    def _cmd_set_worktree(self, parsed: argparse.Namespace) -> int:
        path = resolve_config_path(parsed.config, Path.cwd())
        updated = update_config_worktree(path, parsed.path)
        print(f"Updated config: {path}")
        print(f"New worktree: {updated.worktree}")
        return 0

    def _cmd_ai_test(self, parsed: argparse.Namespace) -> int:
        config = load_config(explicit_path=parsed.config, worktree=parsed.worktree)
        result = asyncio.run(LLMClient(config.ai).test_connection())
        if not result.ok:
            print(f"{RED}AI test failed: {result.error}{RESET}")
            return 1
        print(f"{GREEN}AI reply: {result.reply}{RESET}")
        if result.usage is not None:
            print(f"{DIM}AI tokens: {result.usage.total_tokens}{RESET}")
        return 0

    def _cmd_version(self, _parsed: argparse.Namespace) -> int:
        print(__version__)
        return 0


def main(argv: Optional[list[str]] = None) -> int:
    return CLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
