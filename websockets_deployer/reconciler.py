"""
Route and integration reconciliation.

The API offers no upsert for routes and no transactional batch, so the
``full-resync`` strategy deletes every route on the API and then rebuilds
one integration per function and one route per declared route key. Clearing
has to finish completely before rebuilding starts; the rebuild fans out per
function and per route and joins before returning.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .authorizers import AuthorizerDeduplicator
from .clients import GatewayClient
from .errors import GatewayError
from .models import (CONNECT_ROUTE, DEFAULT_ROUTE_RESPONSE_KEY, ApiIdentity,
                     DesiredState, FunctionBinding, RouteSpec, lambda_invocation_uri)
from .permissions import grant_invoke

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


def run_concurrently(func: Callable, items: Sequence, max_workers: int = DEFAULT_MAX_WORKERS) -> List:
    """
    Call ``func`` on every item in a thread pool and wait for all of them.

    Results come back in input order. The first failure cancels work that has
    not started yet and is re-raised once running branches have finished.
    """
    if not items:
        return []

    results = [None] * len(items)
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items)))) as executor:
        future_to_index = {executor.submit(func, item): i for i, item in enumerate(items)}
        try:
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        except BaseException:
            executor.shutdown(wait=True, cancel_futures=True)
            raise
    return results


@dataclass
class RouteOutcome:
    route_key: str
    function_name: str
    route_id: Optional[str] = None
    authorizer_id: Optional[str] = None
    conflict: bool = False


@dataclass
class ConvergeResult:
    strategy: str
    deleted_routes: int = 0
    integrations: Dict[str, str] = field(default_factory=dict)
    routes: List[RouteOutcome] = field(default_factory=list)

    @property
    def created_route_keys(self) -> List[str]:
        return [r.route_key for r in self.routes if not r.conflict]

    @property
    def conflicting_routes(self) -> List[str]:
        return [r.route_key for r in self.routes if r.conflict]


class ReconcileStrategy:
    """Converges the routes and integrations of an API to a desired state."""

    name: str = ''

    def converge(self, api: ApiIdentity, desired: DesiredState) -> ConvergeResult:
        raise NotImplementedError


class FullResyncStrategy(ReconcileStrategy):
    """Delete every route, then recreate all declared routes."""

    name = 'full-resync'

    def __init__(self, gateway: GatewayClient,
                 authorizers: Optional[AuthorizerDeduplicator] = None,
                 max_workers: int = DEFAULT_MAX_WORKERS):
        self.gateway = gateway
        self.authorizers = authorizers or AuthorizerDeduplicator(gateway)
        self.max_workers = max_workers

    def converge(self, api: ApiIdentity, desired: DesiredState) -> ConvergeResult:
        result = ConvergeResult(strategy=self.name)

        # Phase A: nothing is rebuilt until every old route is gone
        result.deleted_routes = self.clear_routes(api)

        # Phase B
        branches = run_concurrently(
            lambda fn: self.rebuild_function(api, desired, fn),
            desired.websocket_functions,
            self.max_workers,
        )
        for fn, (integration_id, outcomes) in zip(desired.websocket_functions, branches):
            result.integrations[fn.name] = integration_id
            result.routes.extend(outcomes)

        logger.info(
            f"✅ Reconciled {len(result.created_route_keys)} routes across "
            f"{len(result.integrations)} functions ({self.name})")
        return result

    def clear_routes(self, api: ApiIdentity) -> int:
        routes = self.gateway.list_routes(api.api_id)
        if routes:
            logger.info(f"Clearing {len(routes)} existing routes...")
        run_concurrently(
            lambda route: self.gateway.delete_route(api.api_id, route['RouteId']),
            routes,
            self.max_workers,
        )
        return len(routes)

    def rebuild_function(self, api: ApiIdentity, desired: DesiredState,
                         fn: FunctionBinding) -> Tuple[str, List[RouteOutcome]]:
        # An identical integration is an equivalent object, so no lookup first
        response = self.gateway.create_integration(
            api.api_id, lambda_invocation_uri(api.region, fn.durable_id))
        integration_id = response['IntegrationId']
        logger.debug(f"Integration {integration_id} -> {fn.name}")

        grant_invoke(self.gateway, api, fn.durable_id)

        outcomes = run_concurrently(
            lambda route: self.create_route(api, desired, fn, integration_id, route),
            fn.routes,
            self.max_workers,
        )
        return integration_id, outcomes

    def resolve_authorizer(self, api: ApiIdentity, desired: DesiredState,
                           fn: FunctionBinding, route: RouteSpec) -> Optional[str]:
        spec = route.authorizer
        if not spec:
            return None
        if route.route_key != CONNECT_ROUTE:
            logger.warning(
                f"Authorizer on route {route.route_key} of {fn.name} ignored; "
                f"only {CONNECT_ROUTE} supports authorizers")
            return None

        target = spec.arn
        if not target and spec.name:
            sibling = desired.find_function(spec.name)
            target = sibling.durable_id if sibling else None

        if not target or not spec.identity_sources:
            logger.warning(
                f"Authorizer on {fn.name} {route.route_key} skipped: "
                f"needs a resolvable function and identitySources")
            return None

        return self.authorizers.ensure(api, target, spec)

    def create_route(self, api: ApiIdentity, desired: DesiredState, fn: FunctionBinding,
                     integration_id: str, route: RouteSpec) -> RouteOutcome:
        outcome = RouteOutcome(route_key=route.route_key, function_name=fn.name)
        outcome.authorizer_id = self.resolve_authorizer(api, desired, fn, route)

        try:
            response = self.gateway.create_route(
                api.api_id,
                route.route_key,
                integration_id,
                authorizer_id=outcome.authorizer_id,
                route_response_selection_expression=route.route_response_selection_expression,
            )
        except GatewayError as e:
            if not e.is_conflict:
                raise
            # The existing route is not compared with the declared one
            logger.warning(f"Route {route.route_key} already exists; kept as is ({fn.name})")
            outcome.conflict = True
            return outcome

        outcome.route_id = response['RouteId']
        logger.info(f"✅ Route {route.route_key} -> {fn.name}")

        if route.route_response_selection_expression:
            self.gateway.create_route_response(api.api_id, outcome.route_id,
                                               DEFAULT_ROUTE_RESPONSE_KEY)
        return outcome
