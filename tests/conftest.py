import pathlib
import typing

import attr
import click.testing
import pytest

import dotseal.cli


@pytest.fixture()
def workspace(tmp_path: pathlib.Path, monkeypatch) -> pathlib.Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv('DOTSEAL_PASSWORD', raising=False)
    return tmp_path


@pytest.fixture()
def run(workspace):
    def run_func(arguments: typing.Sequence[str], input: typing.Optional[str] = None):
        assert all(isinstance(arg, str) for arg in arguments)
        runner = click.testing.CliRunner()
        return runner.invoke(dotseal.cli.main, arguments, input=input)

    return run_func


@pytest.fixture()
def invoke(run):
    def invoke_func(arguments: typing.Sequence[str], input: typing.Optional[str] = None):
        result = run(arguments, input=input)
        if result.exit_code != 0:
            message = f"Command dotseal {' '.join(arguments)} failed: {result.output}"
            raise Exception(message) from result.exception
        return result.output.splitlines()

    return invoke_func


@attr.s(frozen=True)
class ExampleDocument:
    name: str = attr.ib()
    text: str = attr.ib()
    variables: typing.Dict[str, str] = attr.ib()

    def __str__(self):
        return self.name

    def write(self, path: pathlib.Path) -> pathlib.Path:
        path.write_text(self.text, encoding='utf-8')
        return path


@pytest.fixture(params=[
    ExampleDocument(
        'simple',
        "API_KEY=secret123\nDB_HOST=localhost\n",
        {'API_KEY': 'secret123', 'DB_HOST': 'localhost'},
    ),
    ExampleDocument(
        'comments',
        "# Configuration file\n"
        "API_KEY=secret123\n"
        "\n"
        "DB_PORT=5432  # default port\n"
        "# Another comment\n"
        "DEBUG=true\n",
        {'API_KEY': 'secret123', 'DB_PORT': '5432', 'DEBUG': 'true'},
    ),
    ExampleDocument(
        'quoted',
        "GREETING=\"hello world\"\n"
        "PASSWORD='p#ss \"word\"'\n"
        "EMPTY=\n",
        {'GREETING': 'hello world', 'PASSWORD': 'p#ss "word"', 'EMPTY': ''},
    ),
    ExampleDocument(
        'unicode',
        "NAME=Zoë\nMOTTO=\"ünïcödé ✓\"\n",
        {'NAME': 'Zoë', 'MOTTO': 'ünïcödé ✓'},
    ),
], ids=str)
def document(request) -> ExampleDocument:
    return request.param
