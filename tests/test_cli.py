from unittest.mock import patch

import pytest

from websockets_deployer import cli
from websockets_deployer.errors import ErrorKind, GatewayError

SERVICE_FILE = """
service: chat
provider:
  region: us-east-2
functions:
  chat:
    events:
      - websocket:
          routeKey: $connect
"""


@pytest.fixture
def service_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / 'serverless.yml'
    path.write_text(SERVICE_FILE)
    return str(path)


@pytest.mark.parametrize('command, hook', [
    ('deploy', 'after:deploy:deploy'),
    ('remove', 'after:remove:remove'),
    ('info', 'after:info:info'),
])
def test_commands_run_their_hook(service_file, command, hook):
    with patch.object(cli, 'WebsocketsPlugin') as plugin_cls:
        code = cli.main([command, '--config', service_file, '--stage', 'prod'])

    assert code == 0
    config = plugin_cls.call_args[0][0]
    assert config.stage == 'prod'
    assert config.region == 'us-east-2'
    plugin_cls.return_value.hooks.__getitem__.assert_called_once_with(hook)


def test_missing_config_file(tmp_path):
    assert cli.main(['deploy', '--config', str(tmp_path / 'missing.yml')]) == 1


def test_gateway_errors_exit_non_zero(service_file):
    def deploy():
        raise GatewayError(ErrorKind.PROVIDER, 'AccessDeniedException', 'denied')

    with patch.object(cli, 'WebsocketsPlugin') as plugin_cls:
        plugin_cls.return_value.hooks = {'after:deploy:deploy': deploy}
        assert cli.main(['deploy', '--config', service_file]) == 1


def test_invalid_max_workers(service_file):
    assert cli.main(['deploy', '--config', service_file, '--max-workers', '0']) == 1


def test_unknown_command():
    with pytest.raises(SystemExit):
        cli.main(['explode'])
