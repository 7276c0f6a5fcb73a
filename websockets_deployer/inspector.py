"""Read-only view of the deployed WebSocket API."""

import logging
from typing import Optional

from rich.console import Console

from .models import DesiredState, WebsocketInfo
from .resolver import ApiResolver

logger = logging.getLogger(__name__)


class Inspector:

    def __init__(self, resolver: ApiResolver):
        self.resolver = resolver

    def describe(self, desired: DesiredState) -> Optional[WebsocketInfo]:
        if not desired.websocket_functions:
            return None

        api = self.resolver.resolve()
        if not api:
            logger.warning(
                f"Websockets API \"{self.resolver.config.api_name}\" is not deployed yet")
            return None

        return WebsocketInfo(base_url=api.websocket_url, route_keys=desired.route_keys)


def render(info: WebsocketInfo, console: Optional[Console] = None) -> None:
    console = console or Console()
    console.print("[yellow]WebSockets:[/yellow]")
    console.print(f"  [yellow]Base URL:[/yellow] {info.base_url}", highlight=False, emoji=False)
    console.print("[yellow]  Routes:[/yellow]")
    for url in info.route_urls:
        # route keys are user text, not markup
        console.print(f"    - {url}", markup=False, highlight=False, emoji=False)
