"""
Service configuration.

Reads a serverless-style service file:

    service: chat
    provider:
      stage: dev
      region: us-east-2
      websocketApiName: my-api                          # optional
      websocketApiRouteSelectionExpression: $request.body.route   # optional
    functions:
      chat:
        events:
          - websocket:
              routeKey: $connect
              authorizer:
                name: auth
                identitySources:
                  - route.request.header.Token

Values from a ``.env`` file next to the service file and from the environment
override the file (the environment wins over ``.env``); explicit keyword
overrides (CLI flags) win over all of them.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_STAGE = "dev"
DEFAULT_REGION = "us-east-1"
DEFAULT_ROUTE_SELECTION_EXPRESSION = "$request.body.action"
DEFAULT_CONFIG_FILE = "serverless.yml"


def normalize_name(name: str) -> str:
    """Normalize a function name the way CloudFormation logical ids are built."""
    normalized = name[:1].upper() + name[1:]
    return re.sub(r'[-_]', lambda m: 'Dash' if m.group() == '-' else 'Underscore', normalized)


def lambda_version_output_key(function_name: str) -> str:
    """Stack output that holds the qualified (versioned) ARN of a function."""
    return f"{normalize_name(function_name)}LambdaFunctionQualifiedArn"


@dataclass
class ServiceConfig:
    service: str
    stage: str = DEFAULT_STAGE
    region: str = DEFAULT_REGION
    websocket_api_name: Optional[str] = None
    route_selection_expression: Optional[str] = None
    functions: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.service or not isinstance(self.service, str):
            raise ConfigError("Service name must be a non-empty string")
        if not isinstance(self.functions, dict):
            raise ConfigError("'functions' must be a mapping of name to definition")

    @property
    def api_name(self) -> str:
        if self.websocket_api_name and isinstance(self.websocket_api_name, str):
            return self.websocket_api_name
        return f"{self.service}-{self.stage}-websockets-api"

    @property
    def api_route_selection_expression(self) -> str:
        if self.route_selection_expression and isinstance(self.route_selection_expression, str):
            return self.route_selection_expression
        return DEFAULT_ROUTE_SELECTION_EXPRESSION

    @property
    def stack_name(self) -> str:
        return f"{self.service}-{self.stage}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], stage: Optional[str] = None,
                  region: Optional[str] = None) -> 'ServiceConfig':
        if not isinstance(data, dict):
            raise ConfigError("Service configuration must be a mapping")
        provider = data.get('provider') or {}

        service = data.get('service')
        # serverless also accepts `service: {name: ...}`
        if isinstance(service, dict):
            service = service.get('name')

        return cls(
            service=service,
            stage=(stage
                   or os.getenv('WEBSOCKETS_STAGE')
                   or provider.get('stage')
                   or DEFAULT_STAGE),
            region=(region
                    or os.getenv('WEBSOCKETS_REGION')
                    or provider.get('region')
                    or os.getenv('AWS_REGION')
                    or DEFAULT_REGION),
            websocket_api_name=provider.get('websocketApiName'),
            route_selection_expression=provider.get('websocketApiRouteSelectionExpression'),
            functions=data.get('functions') or {},
        )

    @classmethod
    def load(cls, path: str = DEFAULT_CONFIG_FILE, stage: Optional[str] = None,
             region: Optional[str] = None) -> 'ServiceConfig':
        """Load the service file at ``path`` after reading the ``.env`` beside it."""
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Service file not found: {config_path}")

        load_dotenv(config_path.parent / '.env')

        logger.debug(f"Loading service configuration from {config_path}")
        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        return cls.from_dict(data or {}, stage=stage, region=region)
