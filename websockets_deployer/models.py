"""Value types passed between the deployer components."""

from dataclasses import dataclass, field
from typing import List, Optional

CONNECT_ROUTE = '$connect'
DEFAULT_ROUTE_RESPONSE_KEY = '$default'
PROVIDER_HOST = 'execute-api'
PROVIDER_DOMAIN = 'amazonaws.com'
WEBSOCKET_PROTOCOL = 'WEBSOCKET'


def lambda_invocation_uri(region: str, durable_id: str) -> str:
    """Integration/authorizer URI that makes API Gateway invoke a Lambda."""
    return (f"arn:aws:apigateway:{region}:lambda:path/2015-03-31/"
            f"functions/{durable_id}/invocations")


@dataclass
class AuthorizerSpec:
    arn: Optional[str] = None
    name: Optional[str] = None
    identity_sources: List[str] = field(default_factory=list)


@dataclass
class RouteSpec:
    route_key: str
    authorizer: Optional[AuthorizerSpec] = None
    route_response_selection_expression: Optional[str] = None


@dataclass
class FunctionBinding:
    name: str
    durable_id: Optional[str]
    routes: List[RouteSpec] = field(default_factory=list)

    @property
    def route_keys(self) -> List[str]:
        return [r.route_key for r in self.routes]


@dataclass
class DesiredState:
    all_functions: List[FunctionBinding]
    websocket_functions: List[FunctionBinding]

    def find_function(self, name: str) -> Optional[FunctionBinding]:
        for fn in self.all_functions:
            if fn.name == name:
                return fn
        return None

    @property
    def route_keys(self) -> List[str]:
        return [key for fn in self.websocket_functions for key in fn.route_keys]


@dataclass(frozen=True)
class ApiIdentity:
    """The resolved WebSocket API; immutable for one operation."""
    api_id: str
    name: str
    route_selection_expression: str
    region: str
    stage: str
    protocol_type: str = WEBSOCKET_PROTOCOL

    @property
    def is_websocket(self) -> bool:
        return self.protocol_type == WEBSOCKET_PROTOCOL

    @property
    def websocket_url(self) -> str:
        return (f"wss://{self.api_id}.{PROVIDER_HOST}.{self.region}."
                f"{PROVIDER_DOMAIN}/{self.stage}/")

    def execute_api_arn(self, account_id: str, resource: str = '/*/*',
                        region: Optional[str] = None) -> str:
        return (f"arn:aws:execute-api:{region or self.region}:"
                f"{account_id}:{self.api_id}{resource}")


@dataclass
class WebsocketInfo:
    base_url: str
    route_keys: List[str]

    @property
    def route_urls(self) -> List[str]:
        return [f"{self.base_url}{key}" for key in self.route_keys]

    def lines(self) -> List[str]:
        return [self.base_url] + self.route_urls
