"""Publish a new deployment of the API to its stage."""

import logging

from .clients import GatewayClient
from .errors import GatewayError
from .models import ApiIdentity

logger = logging.getLogger(__name__)


class DeploymentPublisher:

    def __init__(self, gateway: GatewayClient):
        self.gateway = gateway

    def publish(self, api: ApiIdentity) -> str:
        """
        Snapshot the API and point ``api.stage`` at the snapshot.

        The stage is updated first; if it does not exist yet it is created
        with the same deployment. Returns the deployment id.
        """
        deployment_id = self.gateway.create_deployment(api.api_id)['DeploymentId']
        logger.info(f"Deploying API to {api.stage} stage...")

        try:
            self.gateway.update_stage(api.api_id, api.stage, deployment_id)
        except GatewayError as e:
            if not e.is_not_found:
                raise
            logger.info(f"Creating stage {api.stage}")
            self.gateway.create_stage(api.api_id, api.stage, deployment_id)

        logger.info(f"✅ Deployed to {api.stage} stage")
        logger.info(f"Deployment ID: {deployment_id}")
        return deployment_id
