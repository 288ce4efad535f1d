"""
MimiBot - Logger Module
=======================

Tree-style logging with local timestamps and daily log folders.

DESIGN:
    Moderation and ticket events are logged as small trees so that a burst
    of spam timeouts or a ticket close with several side effects can be read
    at a glance. Every level accepts optional (key, value) details.

    A record is rendered to a list of lines first and then written in one
    go, so lines of concurrent records never interleave inside a file.

    - Console plus dated log files under logs/YYYY-MM-DD/
    - Separate errors file for quick triage
    - Old log folders removed on startup
    - Run id per session
    - Optional Discord webhook for errors with details

Author: MimiDLC
"""

import asyncio
import os
import shutil
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import aiohttp
from zoneinfo import ZoneInfo


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("MIMI_LOGS_DIR", "logs"))
LOG_RETENTION_DAYS = 7
LOCAL_TZ = ZoneInfo(os.getenv("MIMI_TIMEZONE", "Asia/Taipei"))

WEBHOOK_TIMEOUT = 10  # seconds
WEBHOOK_COLOR = 0xDC3545

Details = Optional[Sequence[Tuple[str, str]]]

_BRANCH = "├─"
_LAST = "└─"


def _tree_lines(items: Sequence[Tuple[str, str]], indent: str = "  ") -> List[str]:
    last = len(items) - 1
    return [
        f"{indent}{_LAST if i == last else _BRANCH} {key}: {value}"
        for i, (key, value) in enumerate(items)
    ]


# =============================================================================
# Tree Logger Class
# =============================================================================

class TreeLogger:
    """Console and file logger; one instance per process (``logger``)."""

    def __init__(self) -> None:
        self.run_id = uuid.uuid4().hex[:8]
        self._webhook_url: Optional[str] = None

        today = datetime.now(LOCAL_TZ).strftime("%Y-%m-%d")
        self.log_dir = LOGS_DIR / today
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"Mimi-{today}.log"
        self.error_file = self.log_dir / f"Mimi-Errors-{today}.log"

        removed = self._remove_expired_dirs()
        self._append(self.log_file, [
            "",
            "=" * 60,
            f"SESSION {self.run_id} STARTED {datetime.now(LOCAL_TZ):%Y-%m-%d %I:%M:%S %p %Z}",
            "=" * 60,
        ])
        if removed:
            self.info("Old Log Folders Removed", [("Count", str(removed))])

    def set_webhook(self, url: Optional[str]) -> None:
        """Errors with details are also posted to this Discord webhook."""
        self._webhook_url = url

    # =========================================================================
    # Files
    # =========================================================================

    def _remove_expired_dirs(self) -> int:
        if not LOGS_DIR.exists():
            return 0

        cutoff = datetime.now() - timedelta(days=LOG_RETENTION_DAYS)
        removed = 0
        for entry in LOGS_DIR.iterdir():
            if not entry.is_dir():
                continue
            try:
                day = datetime.strptime(entry.name, "%Y-%m-%d")
            except ValueError:
                continue
            if day < cutoff:
                shutil.rmtree(entry, ignore_errors=True)
                removed += 1
        return removed

    @staticmethod
    def _append(path: Path, lines: List[str]) -> None:
        with path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    def _emit(self, lines: List[str], to_errors: bool = False) -> None:
        for line in lines:
            print(line)
        self._append(self.log_file, lines)
        if to_errors:
            self._append(self.error_file, lines)

    def _headline(self, emoji: str, text: str) -> str:
        stamp = datetime.now(LOCAL_TZ).strftime("[%I:%M:%S %p %Z]")
        return f"{stamp} {emoji} {text}" if emoji else f"{stamp} {text}"

    def _record(self, emoji: str, msg: str, details: Details, to_errors: bool = False) -> None:
        lines = [self._headline(emoji, msg)]
        if details:
            lines.extend(_tree_lines(details))
        self._emit(lines, to_errors)

    # =========================================================================
    # Trees
    # =========================================================================

    def tree(self, title: str, items: Sequence[Tuple[str, str]], emoji: str = "📦") -> None:
        """
        One event with its fields.

            [02:30:45 PM CST] 🎫 Ticket Opened
              ├─ Ticket: #12
              ├─ Owner ID: 123
              └─ Channel: 456
        """
        self._emit(["", self._headline(emoji, title), *_tree_lines(items), ""])

    def tree_nested(
        self,
        title: str,
        sections: Sequence[Tuple[str, Sequence[Tuple[str, str]]]],
        emoji: str = "📦",
    ) -> None:
        """Two levels: named sections, each with its own fields."""
        lines = ["", self._headline(emoji, title)]
        last = len(sections) - 1
        for i, (name, items) in enumerate(sections):
            lines.append(f"  {_LAST if i == last else _BRANCH} {name}")
            lines.extend(_tree_lines(items, indent="     " if i == last else "  │  "))
        lines.append("")
        self._emit(lines)

    # =========================================================================
    # Levels
    # =========================================================================

    def debug(self, msg: str, details: Details = None) -> None:
        """Only printed when DEBUG is set."""
        if os.getenv("DEBUG"):
            self._record("🔍", msg, details)

    def info(self, msg: str, details: Details = None) -> None:
        self._record("ℹ️", msg, details)

    def success(self, msg: str, details: Details = None) -> None:
        self._record("✅", msg, details)

    def warning(self, msg: str, details: Details = None) -> None:
        self._record("⚠️", msg, details)

    def error(self, msg: str, details: Details = None) -> None:
        """Goes to the errors file too; with details, also to the webhook."""
        self._record("❌", msg, details, to_errors=True)
        if details and self._webhook_url:
            self._schedule_webhook(msg, list(details))

    def critical(self, msg: str, details: Details = None) -> None:
        self._record("🚨", msg, details, to_errors=True)

    # =========================================================================
    # Webhook
    # =========================================================================

    def _schedule_webhook(self, title: str, details: List[Tuple[str, str]]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # no loop yet
        loop.create_task(self._post_webhook(title, details))

    async def _post_webhook(self, title: str, details: List[Tuple[str, str]]) -> None:
        payload = {
            "embeds": [{
                "title": f"❌ {title}"[:256],
                "description": "\n".join(f"**{k}:** {v}" for k, v in details)[:4000],
                "color": WEBHOOK_COLOR,
                "timestamp": datetime.now(LOCAL_TZ).isoformat(),
                "footer": {"text": f"Run {self.run_id}"},
            }]
        }
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=WEBHOOK_TIMEOUT)) as session:
                async with session.post(self._webhook_url, json=payload) as resp:
                    if resp.status >= 400:
                        self._record("⚠️", "Error Webhook Rejected", [("Status", str(resp.status))])
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            # Not logger.error: that would schedule another webhook post
            self._record("⚠️", "Error Webhook Unreachable", [("Error", str(e)[:100])])


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "logger",
    "TreeLogger",
    "LOCAL_TZ",
    "LOGS_DIR",
]
