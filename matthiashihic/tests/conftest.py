"""
Pytest configuration and shared fixtures for matthiashihic tests
"""

import pytest

from matthiashihic.config import ConfigManager


HELLO_SOURCE = 'hihi!\n"say hello"\neat that java!\n'

ADD_SOURCE = 'hihi!\n"add €1 and €2"\n"then double it"\neat that java!\n'


@pytest.fixture(autouse=True)
def hermetic_environment(monkeypatch, tmp_path):
    """Keep user config files and MATTHIASHIHIC_* variables out of every test"""
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_PATH", tmp_path / "no-such-config.yaml")
    for key in (
        "MATTHIASHIHIC_MODEL",
        "MATTHIASHIHIC_ENDPOINT_URL",
        "MATTHIASHIHIC_API_KEY_ENV",
        "MATTHIASHIHIC_CONNECT_TIMEOUT",
        "MATTHIASHIHIC_BUNDLE",
        "MATTHIASHIHIC_INTERPRETER",
        "MATTHIASHIHIC_KEEP_BUILD_DIR",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def hello_source():
    return HELLO_SOURCE


@pytest.fixture
def add_source():
    return ADD_SOURCE


@pytest.fixture
def load_program():
    """Execute generated program text as a module namespace without running main()"""

    def _load(source: str) -> dict:
        namespace = {"__name__": "generated_program"}
        exec(compile(source, "<generated>", "exec"), namespace)
        return namespace

    return _load


@pytest.fixture
def source_file(tmp_path):
    """Write source text to a .matthiashihic file and return its path"""

    def _write(text: str, name: str = "program.matthiashihic"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
