"""Remove the service's WebSocket API."""

import logging

from .clients import GatewayClient
from .resolver import ApiResolver

logger = logging.getLogger(__name__)


class Teardown:

    def __init__(self, gateway: GatewayClient, resolver: ApiResolver):
        self.gateway = gateway
        self.resolver = resolver

    def destroy(self) -> bool:
        """Delete the API if it exists. Returns False when there was nothing to delete."""
        api = self.resolver.resolve()
        if not api:
            logger.info(f"No Websockets API named \"{self.resolver.config.api_name}\"; nothing to remove")
            return False
        self.resolver.require_websocket(api)

        # Routes, integrations and authorizers go with the API
        logger.info(f"Removing Websockets API named \"{api.name}\" with ID \"{api.api_id}\"")
        self.gateway.delete_api(api.api_id)
        logger.info(f"✅ Removed Websockets API {api.api_id}")
        return True
