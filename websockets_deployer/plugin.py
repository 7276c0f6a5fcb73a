"""
Lifecycle entry points.

The host calls one hook after each of its own deploy/remove/info commands.
Each hook builds everything it needs for that single operation and keeps
nothing on the plugin afterwards.
"""

import logging
from typing import Dict, Optional, Type

from rich.console import Console

from .clients import GatewayClient
from .config import ServiceConfig
from .extractor import extract_desired_state, has_websocket_routes
from .inspector import Inspector, render
from .models import DesiredState, WebsocketInfo
from .publisher import DeploymentPublisher
from .reconciler import DEFAULT_MAX_WORKERS, ConvergeResult, FullResyncStrategy, ReconcileStrategy
from .resolver import ApiResolver
from .teardown import Teardown

logger = logging.getLogger(__name__)

STRATEGIES: Dict[str, Type[ReconcileStrategy]] = {
    FullResyncStrategy.name: FullResyncStrategy,
}


class WebsocketsPlugin:

    def __init__(self, config: ServiceConfig, gateway: Optional[GatewayClient] = None,
                 strategy: str = FullResyncStrategy.name,
                 max_workers: int = DEFAULT_MAX_WORKERS,
                 console: Optional[Console] = None):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown reconcile strategy: {strategy}")
        self.config = config
        self.gateway = gateway or GatewayClient(config.region)
        self.strategy = strategy
        self.max_workers = max_workers
        self.console = console or Console()

        self.hooks = {
            'after:deploy:deploy': self.on_post_deploy,
            'after:remove:remove': self.on_post_remove,
            'after:info:info': self.on_post_info,
        }

    def _resolver(self) -> ApiResolver:
        return ApiResolver(self.gateway, self.config)

    def _desired_state(self) -> DesiredState:
        outputs = self.gateway.get_stack_outputs(self.config.stack_name)
        return extract_desired_state(self.config.functions, outputs)

    def converge(self) -> Optional[ConvergeResult]:
        """Create/update the API, its routes and its stage. None if nothing declares routes."""
        if not has_websocket_routes(self.config.functions):
            logger.debug("No websocket routes declared")
            return None

        desired = self._desired_state()
        logger.info(f"Deploying Websockets API named \"{self.config.api_name}\"...")

        api = self._resolver().resolve_or_create()
        strategy = STRATEGIES[self.strategy](self.gateway, max_workers=self.max_workers)
        result = strategy.converge(api, desired)
        DeploymentPublisher(self.gateway).publish(api)

        logger.info(
            f"Websockets API named \"{api.name}\" with ID \"{api.api_id}\" has been deployed.")
        logger.info(f"  Websocket URL: {api.websocket_url}")
        return result

    def destroy(self) -> bool:
        return Teardown(self.gateway, self._resolver()).destroy()

    def describe(self) -> Optional[WebsocketInfo]:
        if not has_websocket_routes(self.config.functions):
            return None
        return Inspector(self._resolver()).describe(self._desired_state())

    def on_post_deploy(self) -> None:
        self.converge()

    def on_post_remove(self) -> None:
        self.destroy()

    def on_post_info(self) -> None:
        info = self.describe()
        if info:
            render(info, self.console)
