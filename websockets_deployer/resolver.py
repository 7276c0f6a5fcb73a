"""Find or create the service's WebSocket API."""

import logging
from typing import Optional

from .clients import GatewayClient
from .config import ServiceConfig
from .errors import ConfigError
from .models import WEBSOCKET_PROTOCOL, ApiIdentity

logger = logging.getLogger(__name__)


class ApiResolver:
    """Resolves the single API named after the service and stage."""

    def __init__(self, gateway: GatewayClient, config: ServiceConfig):
        self.gateway = gateway
        self.config = config

    def _identity(self, api_id: str, route_selection_expression: Optional[str] = None,
                  protocol_type: str = WEBSOCKET_PROTOCOL) -> ApiIdentity:
        return ApiIdentity(
            api_id=api_id,
            name=self.config.api_name,
            route_selection_expression=(route_selection_expression
                                        or self.config.api_route_selection_expression),
            region=self.config.region,
            stage=self.config.stage,
            protocol_type=protocol_type,
        )

    def resolve(self) -> Optional[ApiIdentity]:
        """Return the existing API, or None. Read-only."""
        name = self.config.api_name
        for api in self.gateway.list_apis():
            if api.get('Name') != name:
                continue
            protocol = api.get('ProtocolType', WEBSOCKET_PROTOCOL)
            if protocol != WEBSOCKET_PROTOCOL:
                logger.warning(
                    f"API {name} ({api['ApiId']}) has protocol {protocol}, "
                    f"expected {WEBSOCKET_PROTOCOL}")
            return self._identity(api['ApiId'], api.get('RouteSelectionExpression'), protocol)
        return None

    def require_websocket(self, api: ApiIdentity) -> ApiIdentity:
        """Refuse to change an API of another protocol that happens to share the name."""
        if not api.is_websocket:
            raise ConfigError(
                f"API \"{api.name}\" ({api.api_id}) is a {api.protocol_type} API, not a "
                f"{WEBSOCKET_PROTOCOL} API; rename it or set provider.websocketApiName")
        return api

    def resolve_or_create(self) -> ApiIdentity:
        api = self.resolve()
        if api:
            self.require_websocket(api)
            logger.info(f"Found existing Websockets API: {api.api_id}")
            return api

        logger.info(f"Creating Websockets API {self.config.api_name}...")
        response = self.gateway.create_api(self.config.api_name,
                                           self.config.api_route_selection_expression)
        logger.info(f"✅ Created Websockets API: {response['ApiId']}")
        return self._identity(response['ApiId'])
