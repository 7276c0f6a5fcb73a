"""
websockets_deployer - provisions an API Gateway WebSocket API for a service.

Provides:
    - desired-state extraction from a serverless-style service file
    - find-or-create of the API, authorizer reuse
    - full-resync reconciliation of routes and integrations
    - stage publishing, teardown and an info view
"""

__version__ = "1.0.0"

from .config import ServiceConfig
from .errors import ConfigError, DeployerError, ErrorKind, GatewayError
from .plugin import WebsocketsPlugin

__all__ = [
    'ConfigError',
    'DeployerError',
    'ErrorKind',
    'GatewayError',
    'ServiceConfig',
    'WebsocketsPlugin',
]
