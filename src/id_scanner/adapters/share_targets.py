"""Share targets for exported spreadsheets."""

from dataclasses import dataclass
from pathlib import Path

import httpx

from id_scanner.errors import ShareUnavailable
from id_scanner.services.export import ShareTarget

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass
class TelegramShareTarget(ShareTarget):
    """Sends exported files to a Telegram chat with httpx."""

    bot_token: str
    chat_id: str
    http_client: httpx.AsyncClient
    timeout: float = 30.0

    @classmethod
    def create(cls, bot_token: str, chat_id: str) -> "TelegramShareTarget":
        """Create a share target with a managed httpx session."""
        return cls(bot_token=bot_token, chat_id=chat_id, http_client=httpx.AsyncClient())

    async def share(self, path: Path, title: str, message: str) -> None:
        """Send the file using Telegram's sendDocument API."""
        url = f"https://api.telegram.org/bot{self.bot_token}/sendDocument"
        try:
            content = path.read_bytes()
            response = await self.http_client.post(
                url,
                data={"chat_id": self.chat_id, "caption": f"{title}\n{message}"},
                files={"document": (path.name, content, XLSX_MIME_TYPE)},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except (OSError, httpx.HTTPError) as exc:
            raise ShareUnavailable(f"Telegram sendDocument failed: {exc}") from exc
        if not response.json().get("ok"):
            raise ShareUnavailable("Telegram sendDocument was rejected")

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()


@dataclass
class NullShareTarget(ShareTarget):
    """Share target used when no share mechanism is configured."""

    reason: str = "No share target configured"

    async def share(self, path: Path, title: str, message: str) -> None:
        """Always report the share mechanism as unavailable."""
        raise ShareUnavailable(self.reason)
