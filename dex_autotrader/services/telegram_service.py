from __future__ import annotations
import os
import requests

from dex_autotrader.models.decision import Decision
from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

TELEGRAM_TOKEN = os.getenv("TELEGRAM_TOKEN")
TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID")


def _esc(s: str) -> str:
    # minimal Markdown escaping
    return (s or "").replace("\\", "\\\\").replace("_", "\\_").replace("*", "\\*").replace("`", "\\`").replace("[", "\\[").replace("]", "\\]")


class TelegramService:
    """Operator notifications. Without TELEGRAM_TOKEN / TELEGRAM_CHAT_ID every send is a no-op."""

    def __init__(self, token: str | None = None, chat_id: str | None = None) -> None:
        self.token = token or TELEGRAM_TOKEN
        self.chat_id = chat_id or TELEGRAM_CHAT_ID
        self.api_base = f"https://api.telegram.org/bot{self.token}" if self.token else None
        if not self.enabled:
            logger.info("TelegramService without TOKEN or CHAT_ID; notifications disabled.")

    @property
    def enabled(self) -> bool:
        return bool(self.api_base and self.chat_id)

    def _send(self, text: str) -> bool:
        if not self.enabled:
            return False
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": "Markdown"}
        try:
            requests.post(f"{self.api_base}/sendMessage", json=payload, timeout=10).raise_for_status()
            return True
        except requests.RequestException as e:
            logger.error(f"✗ Telegram send failed: {e}")
            return False

    @log_function
    def notify_pending(self, session_id: int, decision: Decision) -> bool:
        reasons = "\n".join(f"• {_esc(r)}" for r in decision.reasoning[:3]) or "-"
        msg = (
            f"📢 *Confirmation required: {decision.action.value}*\n\n"
            f"*Session:* {session_id}\n"
            f"*Pair:* `{decision.token_pair}`\n"
            f"*Amount:* {decision.amount}\n"
            f"*Confidence:* {decision.confidence * 100:.1f}%\n\n"
            f"{reasons}"
        )
        return self._send(msg)

    @log_function
    def notify_info(self, message: str) -> bool:
        return self._send(f"ℹ️ {_esc(message)}")

    @log_function
    def notify_error(self, message: str) -> bool:
        return self._send(f"🚨 *ERROR*: {_esc(message)}")
