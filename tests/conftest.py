"""Pytest configuration and shared fixtures."""

import textwrap
from pathlib import Path

import pytest

from chore.ui.console import Console, set_console


RUST_RECIPES = """\
default: help

# Get a list of recipes you can run
@help:
  just --list

# Run all the checks required for CI to pass
ci: lint spell-check test

# Format all rust code
fmt:
  cargo fmt --all

# Check the format of all rust code (but don't write the changes)
fmt-check:
  cargo fmt --all --check

lint: fmt-check
  cargo clippy --all-targets --all-features -- -Dwarnings

spell-check:
  typos

test:
  cargo test --all-targets --all-features --verbose

# Upgrades cargo dependencies
upgrade-deps:
  cargo-upgrade upgrade -vv

# Adds a specified cargo crate, then sorts the dependencies in Cargo.toml
cargo-add crate:
  cargo add {{ crate }} && cargo sort
"""


@pytest.fixture(autouse=True)
def fresh_console():
    """Each test gets its own non-debug console."""
    set_console(Console())
    yield


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the test from inside an empty temporary directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def write_recipes(workdir):
    """Write a Chorefile into the working directory and return its path."""

    def _write(text: str, name: str = "Chorefile") -> Path:
        path = workdir / name
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def rust_recipes():
    return RUST_RECIPES


@pytest.fixture
def read_log(workdir):
    """Lines appended to log.txt by recipe bodies, in order."""

    def _read() -> list:
        path = workdir / "log.txt"
        if not path.exists():
            return []
        return path.read_text().split()

    return _read
