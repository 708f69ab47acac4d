"""
Isobel Dashboard - Logger Module
================================

Tree-style logging with daily rotation.

DESIGN:
    Structured, hierarchical output that is easy to scan. A title line is
    followed by (key, value) detail lines drawn with tree connectors.

    Key features:
    - Tree-style formatting for structured data
    - Daily log rotation in dated folders
    - Retention cleanup of old log folders
    - Session tracking with unique run IDs
    - Discord webhook alerts for errors with details
"""

import asyncio
import os
import uuid
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

import aiohttp


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("ISOBEL_LOG_DIR", "logs"))
"""Directory for all log files, organized by date."""

LOG_RETENTION_DAYS = 7
"""Number of days to retain log directories before cleanup."""

WEBHOOK_DESCRIPTION_LIMIT = 4096
"""Discord embed description limit."""


def _resolve_timezone() -> tzinfo:
    name = os.getenv("LOG_TIMEZONE")
    if not name:
        return timezone.utc
    return ZoneInfo(name)


LOG_TZ = _resolve_timezone()
"""Timezone for log timestamps (UTC unless LOG_TIMEZONE is set)."""

Details = List[Tuple[str, str]]


def _append(path: Path, text: str) -> None:
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)


# =============================================================================
# Tree Logger Class
# =============================================================================

class TreeLogger:
    """
    Logger with tree-style formatting.

    Attributes:
        run_id: Unique identifier for this process run.
        log_file: Path to the main log file.
        error_file: Path to the error-only log file.
    """

    def __init__(self, name: str = "Isobel") -> None:
        self.run_id: str = str(uuid.uuid4())[:8]
        self._webhook_url: Optional[str] = None
        self._name = name

        today = datetime.now(LOG_TZ).strftime("%Y-%m-%d")
        self.log_dir = LOGS_DIR / today
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / f"{name}-{today}.log"
        self.error_file = self.log_dir / f"{name}-Errors-{today}.log"

        self._cleanup_old_logs()
        self._write_session_header()

    def set_webhook(self, url: Optional[str]) -> None:
        """Set the Discord webhook URL used for error alerts."""
        self._webhook_url = url

    # =========================================================================
    # Log Cleanup
    # =========================================================================

    def _cleanup_old_logs(self) -> None:
        """Remove dated log directories older than the retention period."""
        if not LOGS_DIR.exists():
            return

        today = datetime.now(LOG_TZ).date()
        deleted = 0

        for item in LOGS_DIR.iterdir():
            if not item.is_dir():
                continue
            try:
                dir_date = datetime.strptime(item.name, "%Y-%m-%d").date()
            except ValueError:
                continue  # Not a dated directory
            if (today - dir_date).days > LOG_RETENTION_DAYS:
                for f in item.iterdir():
                    f.unlink()
                item.rmdir()
                deleted += 1

        if deleted > 0:
            print(f"[LOG CLEANUP] Removed {deleted} old log directories")

    def _write_session_header(self) -> None:
        header = f"""
============================================================
NEW SESSION - RUN ID: {self.run_id}
[{datetime.now(LOG_TZ).strftime("%Y-%m-%d %H:%M:%S %Z")}]
============================================================
"""
        _append(self.log_file, header)

    # =========================================================================
    # Core Logging
    # =========================================================================

    def _get_timestamp(self) -> str:
        return datetime.now(LOG_TZ).strftime("[%H:%M:%S %Z]")

    def _write(
        self,
        message: str,
        emoji: str = "",
        include_timestamp: bool = True,
        is_error: bool = False,
    ) -> None:
        """
        Write a line to the console and the log file.

        Error lines are also copied to the error log.
        """
        if include_timestamp:
            timestamp = self._get_timestamp()
            full_message = f"{timestamp} {emoji} {message}" if emoji else f"{timestamp} {message}"
        else:
            full_message = f"{emoji} {message}" if emoji else message

        print(full_message)

        _append(self.log_file, f"{full_message}\n")
        if is_error:
            _append(self.error_file, f"{full_message}\n")

    def _write_items(self, items: Details, is_error: bool = False) -> None:
        for i, (key, value) in enumerate(items):
            prefix = "└─" if i == len(items) - 1 else "├─"
            self._write(f"  {prefix} {key}: {value}", include_timestamp=False, is_error=is_error)

    def _log(
        self,
        msg: str,
        emoji: str,
        details: Optional[Details] = None,
        is_error: bool = False,
    ) -> None:
        self._write(msg, emoji, is_error=is_error)
        if details:
            self._write_items(details, is_error=is_error)

    # =========================================================================
    # Tree Formatting
    # =========================================================================

    def tree(
        self,
        title: str,
        items: Details,
        emoji: str = "📦",
    ) -> None:
        """
        Log structured data in tree format.

        Example output:
            [14:30:45 UTC] 🌐 API Service Started
              ├─ Host: 0.0.0.0
              └─ Port: 3003
        """
        _append(self.log_file, "\n")
        self._write(title, emoji=emoji)
        self._write_items(items)
        _append(self.log_file, "\n")

    # =========================================================================
    # Log Levels
    # =========================================================================

    def debug(self, msg: str, details: Optional[Details] = None) -> None:
        """Log a debug message (only when the DEBUG env var is set)."""
        if os.getenv("DEBUG"):
            self._log(msg, "🔍", details)

    def info(self, msg: str, details: Optional[Details] = None) -> None:
        self._log(msg, "ℹ️", details)

    def warning(self, msg: str, details: Optional[Details] = None) -> None:
        self._log(msg, "⚠️", details)

    def error(self, msg: str, details: Optional[Details] = None) -> None:
        """
        Log an error with optional structured details.

        Errors with details are also sent to the webhook when one is set.
        """
        self._log(msg, "❌", details, is_error=True)

        if details and self._webhook_url:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return  # No loop, console/file output is enough
            loop.create_task(self._send_webhook_error(msg, details))

    def critical(self, msg: str, details: Optional[Details] = None) -> None:
        self._log(msg, "🚨", details, is_error=True)

    # =========================================================================
    # Webhook Integration
    # =========================================================================

    async def _send_webhook_error(self, title: str, details: Details) -> None:
        """Send an error embed to the configured Discord webhook."""
        if not self._webhook_url:
            return

        try:
            description = "\n".join(f"**{k}:** {v}" for k, v in details)
            payload = {
                "embeds": [{
                    "title": f"❌ {title}",
                    "description": description[:WEBHOOK_DESCRIPTION_LIMIT],
                    "color": 0xFF0000,
                    "timestamp": datetime.now(LOG_TZ).isoformat(),
                    "footer": {"text": f"Run ID: {self.run_id}"},
                }]
            }

            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self._webhook_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as resp:
                    if resp.status != 204:
                        print(f"Webhook error: {resp.status}")

        except Exception as e:
            print(f"Failed to send webhook: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()
"""Global logger instance shared by every module."""


__all__ = ["logger", "TreeLogger", "LOGS_DIR"]
