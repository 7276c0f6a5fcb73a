"""
Error types raised by the deployer.

Provider errors are classified exactly once, at the GatewayClient boundary,
into a small closed set of kinds. Everything downstream matches on
``GatewayError.kind`` instead of AWS error code strings.
"""

from enum import Enum
from typing import Optional

from botocore.exceptions import ClientError


class ErrorKind(Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PROVIDER = "provider"


NOT_FOUND_CODES = {'NotFoundException', 'ResourceNotFoundException'}
CONFLICT_CODES = {'ConflictException', 'ResourceConflictException'}


class DeployerError(Exception):
    """Base class for all deployer errors."""


class ConfigError(DeployerError):
    """The service configuration is missing or malformed."""


class GatewayError(DeployerError):
    """A remote call failed; ``kind`` says how callers may react."""

    def __init__(self, kind: ErrorKind, code: str, message: str,
                 operation: Optional[str] = None):
        self.kind = kind
        self.code = code
        self.message = message
        self.operation = operation
        super().__init__(f"{code}: {message}")

    @property
    def is_not_found(self) -> bool:
        return self.kind is ErrorKind.NOT_FOUND

    @property
    def is_conflict(self) -> bool:
        return self.kind is ErrorKind.CONFLICT


def classify_code(code: str, message: str = '') -> ErrorKind:
    if code in NOT_FOUND_CODES:
        return ErrorKind.NOT_FOUND
    if code in CONFLICT_CODES:
        return ErrorKind.CONFLICT
    # CloudFormation reports a missing stack as a generic validation error
    if code == 'ValidationError' and 'does not exist' in message:
        return ErrorKind.NOT_FOUND
    return ErrorKind.PROVIDER


def classify_client_error(e: ClientError) -> GatewayError:
    """Translate a botocore ClientError into a GatewayError."""
    error = e.response.get('Error', {})
    code = error.get('Code', 'Unknown')
    message = error.get('Message', str(e))
    return GatewayError(
        classify_code(code, message),
        code,
        message,
        operation=getattr(e, 'operation_name', None),
    )
