"""
Telegram alert channel for warning-and-above bot events.
"""

from __future__ import annotations

from typing import Any, Dict

import requests


def format_alert(record: Dict[str, Any]) -> str:
    """Render a history event as a short plain-text alert."""
    header = f"[GRIDVAULT {record['level']}] {record['message']}"
    lines = [f"Account: {record.get('account_id') or '-'}"]
    fields = record.get("fields") or {}
    lines.extend(f"{key}: {value}" for key, value in sorted(fields.items()))
    return "\n".join([header, *lines])


class TelegramBot:
    """Sends text messages to one chat through the Bot API."""

    def __init__(self, token: str, chat_id: str) -> None:
        self.token = token
        self.chat_id = chat_id
        self.api_url = f"https://api.telegram.org/bot{token}"

    def send_text(self, text: str) -> None:
        """
        Send a text message to the configured chat.

        Raises:
            requests.RequestException: If the message fails to send
        """
        response = requests.post(
            f"{self.api_url}/sendMessage",
            json={"chat_id": self.chat_id, "text": text},
            timeout=10,
        )
        response.raise_for_status()
