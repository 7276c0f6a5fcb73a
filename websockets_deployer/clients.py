"""
AWS access for the deployer.

GatewayClient is the only place that talks to boto3. Every call goes through
``_call`` which turns a botocore ClientError into a classified GatewayError.
"""

import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .errors import ConfigError, ErrorKind, GatewayError, classify_client_error

logger = logging.getLogger(__name__)

RETRY_CONFIG = Config(retries={"max_attempts": 5, "mode": "standard"})


def create_client(service: str, region: str, session: Optional[boto3.session.Session] = None):
    """Create a boto3 client with standard retries."""
    factory = session or boto3
    return factory.client(service, region_name=region, config=RETRY_CONFIG)


def parse_function_arn(arn: str) -> Dict[str, str]:
    """Split ``arn:aws:lambda:region:account:function:name[:qualifier]``."""
    parts = arn.split(':')
    if len(parts) < 7 or parts[2] != 'lambda':
        raise ConfigError(f"Not a Lambda function ARN: {arn}")
    return {
        'region': parts[3],
        'account_id': parts[4],
        'function_name': parts[6],
        'qualifier': parts[7] if len(parts) > 7 else None,
    }


class GatewayClient:
    """Control-plane operations used by the deployer."""

    def __init__(self, region: str, apigateway=None, lambda_client=None,
                 cloudformation=None):
        self.region = region
        self.apigateway = apigateway or create_client('apigatewayv2', region)
        self.lambda_client = lambda_client or create_client('lambda', region)
        self.cloudformation = cloudformation or create_client('cloudformation', region)

    def _call(self, client, operation: str, **params) -> Dict[str, Any]:
        logger.debug(f"{operation} {params}")
        try:
            return getattr(client, operation)(**params)
        except ClientError as e:
            raise classify_client_error(e) from e

    def _paginate(self, operation: str, **params) -> List[Dict[str, Any]]:
        items = []
        try:
            paginator = self.apigateway.get_paginator(operation)
            for page in paginator.paginate(**params):
                items.extend(page.get('Items', []))
        except ClientError as e:
            raise classify_client_error(e) from e
        return items

    # ------------------------------------------------------------------
    # Stack outputs
    # ------------------------------------------------------------------

    def get_stack_outputs(self, stack_name: str) -> Dict[str, str]:
        """Map OutputKey -> OutputValue for a deployed stack."""
        response = self._call(self.cloudformation, 'describe_stacks', StackName=stack_name)
        stacks = response.get('Stacks', [])
        if not stacks:
            raise GatewayError(ErrorKind.NOT_FOUND, 'StackNotFound',
                               f"Stack {stack_name} does not exist",
                               operation='DescribeStacks')
        return {o['OutputKey']: o['OutputValue'] for o in stacks[0].get('Outputs', [])}

    # ------------------------------------------------------------------
    # APIs
    # ------------------------------------------------------------------

    def list_apis(self) -> List[Dict[str, Any]]:
        return self._paginate('get_apis')

    def create_api(self, name: str, route_selection_expression: str) -> Dict[str, Any]:
        return self._call(self.apigateway, 'create_api',
                          Name=name,
                          ProtocolType='WEBSOCKET',
                          RouteSelectionExpression=route_selection_expression)

    def delete_api(self, api_id: str) -> None:
        self._call(self.apigateway, 'delete_api', ApiId=api_id)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def list_routes(self, api_id: str) -> List[Dict[str, Any]]:
        return self._paginate('get_routes', ApiId=api_id)

    def create_route(self, api_id: str, route_key: str, integration_id: str,
                     authorizer_id: Optional[str] = None,
                     route_response_selection_expression: Optional[str] = None) -> Dict[str, Any]:
        params = {
            'ApiId': api_id,
            'RouteKey': route_key,
            'Target': f"integrations/{integration_id}",
            'AuthorizationType': 'CUSTOM' if authorizer_id else 'NONE',
        }
        if authorizer_id:
            params['AuthorizerId'] = authorizer_id
        if route_response_selection_expression:
            params['RouteResponseSelectionExpression'] = route_response_selection_expression
        return self._call(self.apigateway, 'create_route', **params)

    def delete_route(self, api_id: str, route_id: str) -> None:
        self._call(self.apigateway, 'delete_route', ApiId=api_id, RouteId=route_id)

    def create_route_response(self, api_id: str, route_id: str,
                              route_response_key: str) -> Dict[str, Any]:
        return self._call(self.apigateway, 'create_route_response',
                          ApiId=api_id,
                          RouteId=route_id,
                          RouteResponseKey=route_response_key)

    # ------------------------------------------------------------------
    # Integrations and authorizers
    # ------------------------------------------------------------------

    def create_integration(self, api_id: str, integration_uri: str) -> Dict[str, Any]:
        return self._call(self.apigateway, 'create_integration',
                          ApiId=api_id,
                          IntegrationMethod='POST',
                          IntegrationType='AWS_PROXY',
                          IntegrationUri=integration_uri)

    def list_authorizers(self, api_id: str) -> List[Dict[str, Any]]:
        return self._paginate('get_authorizers', ApiId=api_id)

    def create_authorizer(self, api_id: str, name: str, authorizer_uri: str,
                          identity_sources: List[str]) -> Dict[str, Any]:
        return self._call(self.apigateway, 'create_authorizer',
                          ApiId=api_id,
                          AuthorizerType='REQUEST',
                          AuthorizerUri=authorizer_uri,
                          IdentitySource=list(identity_sources),
                          Name=name)

    def grant_invoke_permission(self, function_arn: str, source_arn: str,
                                statement_id: str) -> Dict[str, Any]:
        return self._call(self.lambda_client, 'add_permission',
                          Action='lambda:InvokeFunction',
                          FunctionName=function_arn,
                          Principal='apigateway.amazonaws.com',
                          SourceArn=source_arn,
                          StatementId=statement_id)

    # ------------------------------------------------------------------
    # Deployments
    # ------------------------------------------------------------------

    def create_deployment(self, api_id: str) -> Dict[str, Any]:
        return self._call(self.apigateway, 'create_deployment', ApiId=api_id)

    def update_stage(self, api_id: str, stage_name: str, deployment_id: str) -> Dict[str, Any]:
        return self._call(self.apigateway, 'update_stage',
                          ApiId=api_id, StageName=stage_name, DeploymentId=deployment_id)

    def create_stage(self, api_id: str, stage_name: str, deployment_id: str) -> Dict[str, Any]:
        return self._call(self.apigateway, 'create_stage',
                          ApiId=api_id, StageName=stage_name, DeploymentId=deployment_id)
