"""Tests for the server entry point and id generation."""

import os

import pytest
import uvicorn

from bidboard.server_cli import build_parser, environment_for, main
from bidboard.services.id_generator import ID_HEX_LENGTH, generate_id


def test_environment_for_local_mode():
    args = build_parser().parse_args(["--local", "--log-level", "debug"])
    assert environment_for(args) == {"BIDBOARD_LOCAL_MODE": "1", "BIDBOARD_LOG_LEVEL": "debug"}


def test_environment_defaults_are_empty():
    assert environment_for(build_parser().parse_args([])) == {}


def test_main_runs_uvicorn(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    # Registered first so teardown restores the original environment
    monkeypatch.setenv("BIDBOARD_DATABASE_URL", "unset")

    main(["--port", "9001", "--database-url", "sqlite+aiosqlite:///./boards.db"])

    assert calls == [("bidboard.main:app", {"host": "0.0.0.0", "port": 9001, "log_level": "info"})]
    assert os.environ["BIDBOARD_DATABASE_URL"] == "sqlite+aiosqlite:///./boards.db"


def test_generate_id():
    first, second = generate_id("prop_"), generate_id("prop_")
    assert first.startswith("prop_")
    assert len(first) == len("prop_") + ID_HEX_LENGTH
    assert first != second


def test_generate_id_requires_separator():
    with pytest.raises(ValueError):
        generate_id("prop")
