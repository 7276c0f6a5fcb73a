"""
Desired-state extraction.

Turns the declared functions and the stack outputs of the last deploy into
FunctionBindings. Only functions with at least one websocket route take part
in reconciliation, but every function is kept so authorizers can refer to a
sibling function by name.
"""

import logging
from typing import Any, Dict, List, Mapping

import jmespath
from jsonschema import Draft202012Validator

from .config import lambda_version_output_key
from .errors import ConfigError, ErrorKind, GatewayError
from .models import AuthorizerSpec, DesiredState, FunctionBinding, RouteSpec

logger = logging.getLogger(__name__)

WEBSOCKET_EVENTS = jmespath.compile("events[?websocket].websocket")

WEBSOCKET_EVENT_SCHEMA = {
    "type": "object",
    "properties": {
        "routeKey": {"type": "string"},
        "routeResponseSelectionExpression": {"type": "string"},
        "authorizer": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {
                    "type": "object",
                    "properties": {
                        "arn": {"type": "string"},
                        "name": {"type": "string"},
                        "identitySources": {
                            "oneOf": [
                                {"type": "string"},
                                {"type": "array", "items": {"type": "string"}},
                            ]
                        },
                    },
                },
            ]
        },
    },
}

_validator = Draft202012Validator(WEBSOCKET_EVENT_SCHEMA)


def websocket_events(definition: Any) -> List[Dict[str, Any]]:
    """The ``websocket`` blocks of a function; ``websocket: $connect`` is shorthand for a routeKey."""
    if not isinstance(definition, dict):
        return []
    events = WEBSOCKET_EVENTS.search(definition) or []
    return [{'routeKey': e} if isinstance(e, str) else e for e in events]


def _validate_events(function_name: str, events: List[Any]) -> None:
    for event in events:
        errors = sorted(_validator.iter_errors(event), key=lambda e: list(e.path))
        if errors:
            location = '.'.join(str(p) for p in errors[0].path) or 'websocket'
            raise ConfigError(
                f"Invalid websocket event on function '{function_name}' "
                f"({location}): {errors[0].message}")


def parse_authorizer(raw: Any) -> AuthorizerSpec:
    """Accept ``{arn|name, identitySources}`` or a bare ARN/function name."""
    if isinstance(raw, str):
        if raw.startswith('arn:'):
            return AuthorizerSpec(arn=raw)
        return AuthorizerSpec(name=raw)

    sources = raw.get('identitySources') or []
    if isinstance(sources, str):
        sources = [s.strip() for s in sources.split(',') if s.strip()]

    return AuthorizerSpec(
        arn=raw.get('arn'),
        name=raw.get('name'),
        identity_sources=list(sources),
    )


def parse_routes(events: List[Dict[str, Any]]) -> List[RouteSpec]:
    routes = []
    for event in events:
        if not event.get('routeKey'):
            continue
        authorizer = event.get('authorizer')
        routes.append(RouteSpec(
            route_key=event['routeKey'],
            authorizer=parse_authorizer(authorizer) if authorizer else None,
            route_response_selection_expression=event.get('routeResponseSelectionExpression'),
        ))
    return routes


def extract_desired_state(functions: Mapping[str, Dict[str, Any]],
                          outputs: Mapping[str, str]) -> DesiredState:
    """
    Build the desired state from declared functions and stack outputs.

    Raises GatewayError(NOT_FOUND) when a function declares routes but has no
    durable id in ``outputs``: it was not actually deployed.
    """
    all_functions = []
    for name, definition in (functions or {}).items():
        events = websocket_events(definition)
        _validate_events(name, events)
        routes = parse_routes(events)

        output_key = lambda_version_output_key(name)
        durable_id = outputs.get(output_key)
        if routes and not durable_id:
            raise GatewayError(
                ErrorKind.NOT_FOUND, 'OutputNotFound',
                f"No stack output {output_key} for function '{name}'; "
                f"was it deployed?")

        all_functions.append(FunctionBinding(name=name, durable_id=durable_id, routes=routes))

    websocket_functions = [fn for fn in all_functions if fn.routes]
    logger.debug(f"{len(websocket_functions)} of {len(all_functions)} functions declare websocket routes")
    return DesiredState(all_functions=all_functions, websocket_functions=websocket_functions)


def has_websocket_routes(functions: Mapping[str, Dict[str, Any]]) -> bool:
    """True if any declared function has a websocket route; no remote calls."""
    return any(
        event.get('routeKey')
        for definition in (functions or {}).values()
        for event in websocket_events(definition)
        if isinstance(event, dict)
    )
