"""
WhatsApp redirect dispatcher.

There is no messaging API: a ``wa.me`` deep link carrying the message is
built and handed to an opener, by default the system web browser. The
operator then presses send in WhatsApp.
"""

import re
import webbrowser
from typing import Callable, Optional
from urllib.parse import quote

from library_desk.config.settings import Settings, get_settings
from library_desk.core.exceptions import NotificationDispatchError
from library_desk.core.logging import get_logger

logger = get_logger(__name__)

# Characters left unescaped, matching encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"

Opener = Callable[[str], object]


class WhatsAppDispatcher:
    """Builds ``wa.me`` links and opens them"""

    def __init__(self, settings: Optional[Settings] = None, opener: Optional[Opener] = None):
        self.settings = settings or get_settings()
        self.opener: Opener = opener or webbrowser.open

    def format_mobile(self, mobile: str) -> str:
        digits = re.sub(r"\D", "", mobile or "")
        if len(digits) == 10:
            digits = f"{self.settings.DEFAULT_COUNTRY_CODE}{digits}"
        return digits

    def build_link(self, mobile: str, message: str) -> str:
        formatted = self.format_mobile(mobile)
        if not formatted:
            raise NotificationDispatchError("Mobile number has no digits", mobile=mobile)
        encoded = quote(message, safe=_URI_COMPONENT_SAFE)
        return f"{self.settings.WHATSAPP_BASE_URL.rstrip('/')}/{formatted}?text={encoded}"

    def send(self, mobile: str, message: str) -> str:
        """
        Open the chat for ``mobile`` with ``message`` prefilled.

        Returns:
            The link that was opened

        Raises:
            NotificationDispatchError: If the link cannot be built or opened
        """
        link = self.build_link(mobile, message)
        try:
            self.opener(link)
        except Exception as e:
            raise NotificationDispatchError(f"Could not open WhatsApp link: {e}", mobile=mobile) from e

        logger.info("Opened WhatsApp chat", extra={"mobile": mobile, "message_length": len(message)})
        return link


__all__ = ["Opener", "WhatsAppDispatcher"]
