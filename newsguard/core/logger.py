"""
NewsGuard - Logger Module
=========================

Tree-style logging to console and dated log files.

DESIGN:
    Every entry is a headline plus optional (key, value) details drawn as
    a small tree, so a quota warning or a batch summary reads as one
    block:

        [14:30:45 UTC] ⚠️ Classifier Quota Nearly Exhausted
          ├─ Used: 52/60
          └─ Queue: 3

    Files live under LOGS_DIR/<date>/. Errors are mirrored to a separate
    file and, when a webhook is configured, POSTed with aiohttp. Dated
    folders past the retention period are removed at start-up.
"""

import asyncio
import os
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import aiohttp
from zoneinfo import ZoneInfo


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("NEWSGUARD_LOGS_DIR", "logs"))
"""Root of the dated log folders."""

LOG_RETENTION_DAYS = 7

LOG_TZ = ZoneInfo(os.getenv("NEWSGUARD_LOG_TZ", "UTC"))
"""Timezone used for log timestamps and folder names."""

LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40}

LOG_LEVEL = LEVELS.get(os.getenv("NEWSGUARD_LOG_LEVEL", "info").lower(), LEVELS["info"])
"""Entries below this level are dropped."""

WEBHOOK_TIMEOUT = 10

Details = List[Tuple[str, str]]


# =============================================================================
# Tree Logger
# =============================================================================

class TreeLogger:
    """
    Process-wide logger.

    Attributes:
        run_id: Short id stamped on the session header and webhook alerts.
        log_file: Today's main log file.
        error_file: Today's error-only log file.
    """

    def __init__(self, logs_dir: Path = LOGS_DIR, level: int = LOG_LEVEL) -> None:
        self.run_id: str = uuid.uuid4().hex[:8]
        self.level = level
        self._logs_dir = logs_dir
        self._webhook_url: Optional[str] = None

        today = datetime.now(LOG_TZ).strftime("%Y-%m-%d")
        self.log_dir = logs_dir / today
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"NewsGuard-{today}.log"
        self.error_file = self.log_dir / f"NewsGuard-Errors-{today}.log"

        self._remove_expired_folders()
        self._append(self.log_file, [
            "",
            "=" * 60,
            f"SESSION {self.run_id} STARTED {datetime.now(LOG_TZ).strftime('%Y-%m-%d %H:%M:%S %Z')}",
            "=" * 60,
        ])

    def set_webhook(self, url: Optional[str]) -> None:
        """Send error entries with details to url (None disables alerts)."""
        self._webhook_url = url

    # =========================================================================
    # Housekeeping
    # =========================================================================

    def _remove_expired_folders(self) -> None:
        today = datetime.now(LOG_TZ).replace(tzinfo=None)
        removed = 0

        for folder in self._logs_dir.iterdir():
            if not folder.is_dir():
                continue
            try:
                age = today - datetime.strptime(folder.name, "%Y-%m-%d")
            except ValueError:
                continue
            if age.days > LOG_RETENTION_DAYS:
                shutil.rmtree(folder, ignore_errors=True)
                removed += 1

        if removed:
            print(f"[LOG CLEANUP] Removed {removed} log folders older than {LOG_RETENTION_DAYS} days")

    # =========================================================================
    # Output
    # =========================================================================

    @staticmethod
    def _append(path: Path, lines: List[str]) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    def _emit(
        self,
        level: str,
        message: str,
        emoji: str,
        details: Optional[Details] = None,
        spaced: bool = False,
    ) -> None:
        """
        Render one entry and write it everywhere it belongs.

        Args:
            level: One of LEVELS; entries below the logger level are dropped.
            message: Headline.
            emoji: Marker placed after the timestamp.
            details: Optional (key, value) rows drawn as a tree.
            spaced: Surround the entry with blank lines in the file.
        """
        if LEVELS[level] < self.level:
            return

        stamp = datetime.now(LOG_TZ).strftime("[%H:%M:%S %Z]")
        lines = [f"{stamp} {emoji} {message}"]
        for index, (key, value) in enumerate(details or []):
            branch = "└─" if index == len(details) - 1 else "├─"
            lines.append(f"  {branch} {key}: {value}")

        print("\n".join(lines))
        self._append(self.log_file, [""] + lines + [""] if spaced else lines)
        if LEVELS[level] >= LEVELS["error"]:
            self._append(self.error_file, lines + [""])

    # =========================================================================
    # Public API
    # =========================================================================

    def tree(self, title: str, items: Details, emoji: str = "📦") -> None:
        """
        Log a titled block of (key, value) rows.

        Example:
            logger.tree("Moderation Service Initialized", [
                ("Quota", "60/60s"),
                ("Cache", "sqlite + memory"),
            ], emoji="🛡️")
        """
        self._emit("info", title, emoji, items, spaced=True)

    def debug(self, msg: str, details: Optional[Details] = None) -> None:
        self._emit("debug", msg, "🔍", details)

    def info(self, msg: str, details: Optional[Details] = None) -> None:
        self._emit("info", msg, "ℹ️", details)

    def warning(self, msg: str, details: Optional[Details] = None) -> None:
        self._emit("warning", msg, "⚠️", details)

    def error(self, msg: str, details: Optional[Details] = None) -> None:
        """
        Log an error, alerting the webhook when details are given.

        The alert is only scheduled from inside a running event loop.
        """
        self._emit("error", msg, "❌", details, spaced=bool(details))

        if details and self._webhook_url:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            loop.create_task(self._alert(msg, details))

    # =========================================================================
    # Webhook Alerts
    # =========================================================================

    async def _alert(self, title: str, details: Details) -> None:
        """POST an error entry to the configured webhook."""
        url = self._webhook_url
        if not url:
            return

        payload = {
            "title": title,
            "details": dict(details),
            "run_id": self.run_id,
            "timestamp": datetime.now(LOG_TZ).isoformat(),
        }

        try:
            timeout = aiohttp.ClientTimeout(total=WEBHOOK_TIMEOUT)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, json=payload) as resp:
                    if resp.status >= 300:
                        print(f"[WEBHOOK] Alert rejected with HTTP {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"[WEBHOOK] Alert failed: {type(e).__name__}: {e}")


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
    "LEVELS",
]
