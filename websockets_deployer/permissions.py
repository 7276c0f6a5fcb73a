"""Lambda invoke permissions for API Gateway."""

import hashlib
import logging

from .clients import GatewayClient, parse_function_arn
from .errors import GatewayError
from .models import ApiIdentity

logger = logging.getLogger(__name__)

DEFAULT_RESOURCE = '/*/*'
MAX_STATEMENT_ID_LENGTH = 100


def statement_id(function_name: str, api_id: str, suffix: str = '') -> str:
    """``{function}-websocket-{apiId}[-{suffix}]``, at most 100 characters."""
    tail = f"-websocket-{api_id}" + (f"-{suffix}" if suffix else '')
    sid = f"{function_name}{tail}"
    if len(sid) <= MAX_STATEMENT_ID_LENGTH:
        return sid

    # Lambda rejects longer ids; shorten the name and keep it unique with a digest
    digest = hashlib.sha1(function_name.encode('utf-8')).hexdigest()[:8]
    keep = max(0, MAX_STATEMENT_ID_LENGTH - len(tail) - len(digest) - 1)
    return f"{function_name[:keep]}-{digest}{tail}"[:MAX_STATEMENT_ID_LENGTH]


def grant_invoke(gateway: GatewayClient, api: ApiIdentity, durable_id: str,
                 resource: str = DEFAULT_RESOURCE, suffix: str = '') -> bool:
    """
    Allow the API to invoke ``durable_id`` on ``resource``.

    Returns False when an identical statement already exists. Any other
    failure propagates.
    """
    arn = parse_function_arn(durable_id)
    source_arn = api.execute_api_arn(arn['account_id'], resource, region=arn['region'])
    sid = statement_id(arn['function_name'], api.api_id, suffix)

    try:
        gateway.grant_invoke_permission(durable_id, source_arn, sid)
    except GatewayError as e:
        if not e.is_conflict:
            raise
        logger.debug(f"Permission {sid} already exists for {arn['function_name']}")
        return False

    logger.info(f"✅ Granted invoke permission for {arn['function_name']} on {resource}")
    return True
