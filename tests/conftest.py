import itertools
import threading

import pytest

from websockets_deployer.config import ServiceConfig, lambda_version_output_key
from websockets_deployer.errors import ErrorKind, GatewayError

REGION = 'us-east-1'
ACCOUNT_ID = '123456789012'

MUTATIONS = {
    'create_api', 'delete_api', 'create_route', 'delete_route',
    'create_route_response', 'create_integration', 'create_authorizer',
    'grant_invoke_permission', 'create_deployment', 'update_stage', 'create_stage',
}


def function_arn(name, service='chat', stage='dev', version=1):
    return f"arn:aws:lambda:{REGION}:{ACCOUNT_ID}:function:{service}-{stage}-{name}:{version}"


def not_found(message='not found'):
    return GatewayError(ErrorKind.NOT_FOUND, 'NotFoundException', message)


def conflict(message='conflict'):
    return GatewayError(ErrorKind.CONFLICT, 'ConflictException', message)


class FakeGateway:
    """In-memory stand-in for GatewayClient that behaves like the provider."""

    def __init__(self, region=REGION):
        self.region = region
        self.outputs = {}
        self.apis = {}
        self.routes = {}
        self.integrations = {}
        self.authorizers = {}
        self.route_responses = []
        self.permissions = {}
        self.stages = {}
        self.deployments = []
        self.calls = []
        self.failures = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    # helpers ---------------------------------------------------------

    def _record(self, operation, **params):
        with self._lock:
            self.calls.append((operation, params))
            error = self.failures.get(operation)
        if error is not None:
            raise error

    def _next_id(self, prefix):
        with self._lock:
            return f"{prefix}{next(self._ids)}"

    def fail(self, operation, error):
        self.failures[operation] = error

    def calls_to(self, operation):
        return [params for op, params in self.calls if op == operation]

    @property
    def mutations(self):
        return [op for op, _ in self.calls if op in MUTATIONS]

    def add_api(self, name, protocol='WEBSOCKET'):
        api_id = self._next_id('api')
        self.apis[api_id] = {
            'ApiId': api_id,
            'Name': name,
            'ProtocolType': protocol,
            'RouteSelectionExpression': '$request.body.action',
        }
        self.routes[api_id] = {}
        self.integrations[api_id] = {}
        self.authorizers[api_id] = []
        return api_id

    def route_table(self, api_id):
        """RouteKey -> (function uri, authorization type)."""
        table = {}
        for route in self.routes[api_id].values():
            integration_id = route['Target'].split('/', 1)[1]
            table[route['RouteKey']] = (self.integrations[api_id][integration_id],
                                        route['AuthorizationType'])
        return table

    def set_function_outputs(self, *names):
        for name in names:
            self.outputs[lambda_version_output_key(name)] = function_arn(name)

    # GatewayClient surface ---------------------------------------------

    def get_stack_outputs(self, stack_name):
        self._record('get_stack_outputs', stack_name=stack_name)
        return dict(self.outputs)

    def list_apis(self):
        self._record('list_apis')
        return [dict(api) for api in self.apis.values()]

    def create_api(self, name, route_selection_expression):
        self._record('create_api', name=name,
                     route_selection_expression=route_selection_expression)
        api_id = self.add_api(name)
        self.apis[api_id]['RouteSelectionExpression'] = route_selection_expression
        return dict(self.apis[api_id])

    def delete_api(self, api_id):
        self._record('delete_api', api_id=api_id)
        with self._lock:
            if api_id not in self.apis:
                raise not_found(f"Invalid API identifier specified {api_id}")
            del self.apis[api_id]
            self.routes.pop(api_id, None)
            self.integrations.pop(api_id, None)
            self.authorizers.pop(api_id, None)

    def list_routes(self, api_id):
        self._record('list_routes', api_id=api_id)
        return [dict(r) for r in self.routes[api_id].values()]

    def create_route(self, api_id, route_key, integration_id, authorizer_id=None,
                     route_response_selection_expression=None):
        self._record('create_route', api_id=api_id, route_key=route_key,
                     integration_id=integration_id, authorizer_id=authorizer_id,
                     route_response_selection_expression=route_response_selection_expression)
        with self._lock:
            if any(r['RouteKey'] == route_key for r in self.routes[api_id].values()):
                raise conflict(f"Route with key {route_key} already exists for this API")
            route_id = self._next_id('route')
            self.routes[api_id][route_id] = {
                'RouteId': route_id,
                'RouteKey': route_key,
                'Target': f"integrations/{integration_id}",
                'AuthorizationType': 'CUSTOM' if authorizer_id else 'NONE',
                'AuthorizerId': authorizer_id,
            }
            return dict(self.routes[api_id][route_id])

    def delete_route(self, api_id, route_id):
        self._record('delete_route', api_id=api_id, route_id=route_id)
        with self._lock:
            if route_id not in self.routes[api_id]:
                raise not_found(f"Invalid Route identifier specified {route_id}")
            del self.routes[api_id][route_id]

    def create_route_response(self, api_id, route_id, route_response_key):
        self._record('create_route_response', api_id=api_id, route_id=route_id,
                     route_response_key=route_response_key)
        self.route_responses.append((api_id, route_id, route_response_key))
        return {'RouteResponseId': self._next_id('rr'), 'RouteResponseKey': route_response_key}

    def create_integration(self, api_id, integration_uri):
        self._record('create_integration', api_id=api_id, integration_uri=integration_uri)
        integration_id = self._next_id('int')
        with self._lock:
            self.integrations[api_id][integration_id] = integration_uri
        return {'IntegrationId': integration_id, 'IntegrationUri': integration_uri}

    def list_authorizers(self, api_id):
        self._record('list_authorizers', api_id=api_id)
        return [dict(a) for a in self.authorizers[api_id]]

    def create_authorizer(self, api_id, name, authorizer_uri, identity_sources):
        self._record('create_authorizer', api_id=api_id, name=name,
                     authorizer_uri=authorizer_uri, identity_sources=identity_sources)
        authorizer = {
            'AuthorizerId': self._next_id('auth'),
            'Name': name,
            'AuthorizerType': 'REQUEST',
            'AuthorizerUri': authorizer_uri,
            'IdentitySource': list(identity_sources),
        }
        with self._lock:
            self.authorizers[api_id].append(authorizer)
        return dict(authorizer)

    def grant_invoke_permission(self, function_arn, source_arn, statement_id):
        self._record('grant_invoke_permission', function_arn=function_arn,
                     source_arn=source_arn, statement_id=statement_id)
        with self._lock:
            key = (function_arn, statement_id)
            if key in self.permissions:
                raise GatewayError(ErrorKind.CONFLICT, 'ResourceConflictException',
                                   f"The statement id ({statement_id}) provided already exists")
            self.permissions[key] = source_arn
        return {'Statement': '{}'}

    def create_deployment(self, api_id):
        self._record('create_deployment', api_id=api_id)
        deployment_id = self._next_id('dep')
        self.deployments.append((api_id, deployment_id))
        return {'DeploymentId': deployment_id}

    def update_stage(self, api_id, stage_name, deployment_id):
        self._record('update_stage', api_id=api_id, stage_name=stage_name,
                     deployment_id=deployment_id)
        if (api_id, stage_name) not in self.stages:
            raise not_found(f"Invalid stage identifier specified {stage_name}")
        self.stages[(api_id, stage_name)] = deployment_id
        return {'StageName': stage_name, 'DeploymentId': deployment_id}

    def create_stage(self, api_id, stage_name, deployment_id):
        self._record('create_stage', api_id=api_id, stage_name=stage_name,
                     deployment_id=deployment_id)
        self.stages[(api_id, stage_name)] = deployment_id
        return {'StageName': stage_name, 'DeploymentId': deployment_id}


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so values a .env file loads are removed again on teardown
    for name in ('WEBSOCKETS_STAGE', 'WEBSOCKETS_REGION', 'AWS_REGION'):
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)


def make_config(functions=None, **provider):
    data = {
        'service': 'chat',
        'provider': {'stage': 'dev', 'region': REGION, **provider},
        'functions': functions or {},
    }
    return ServiceConfig.from_dict(data)


def ws(route_key, **extra):
    return {'websocket': {'routeKey': route_key, **extra}}
