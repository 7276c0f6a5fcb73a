"""
Custom authorizers for $connect routes.

create_authorizer is not idempotent, so an authorizer with the same target
and the same identity sources is reused instead of created again.
"""

import logging
import threading
from typing import List

from .clients import GatewayClient
from .models import ApiIdentity, AuthorizerSpec, lambda_invocation_uri
from .permissions import grant_invoke

logger = logging.getLogger(__name__)


def find_matching_authorizer(authorizers: List[dict], authorizer_uri: str,
                             identity_sources: List[str]):
    for item in authorizers:
        if (item.get('AuthorizerUri') == authorizer_uri
                and list(item.get('IdentitySource') or []) == list(identity_sources)):
            return item
    return None


class AuthorizerDeduplicator:

    def __init__(self, gateway: GatewayClient):
        self.gateway = gateway
        # list-then-create must not interleave between route branches
        self._lock = threading.Lock()

    def ensure(self, api: ApiIdentity, durable_id: str, spec: AuthorizerSpec) -> str:
        """Return the id of an authorizer invoking ``durable_id`` with ``spec``'s identity sources."""
        authorizer_uri = lambda_invocation_uri(api.region, durable_id)

        with self._lock:
            existing = self.gateway.list_authorizers(api.api_id)
            match = find_matching_authorizer(existing, authorizer_uri, spec.identity_sources)
            if match:
                authorizer_id = match['AuthorizerId']
                logger.info(f"Reusing authorizer {authorizer_id}")
            else:
                name = f"authorizer{len(existing) + 1}"
                response = self.gateway.create_authorizer(api.api_id, name, authorizer_uri,
                                                          spec.identity_sources)
                authorizer_id = response['AuthorizerId']
                logger.info(f"✅ Created authorizer {name}: {authorizer_id}")

        # also on reuse: a grant that failed after the create is retried here
        grant_invoke(self.gateway, api, durable_id,
                     resource=f"/authorizers/{authorizer_id}",
                     suffix=f"authorizer-{authorizer_id}")
        return authorizer_id
