"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory that is cleaned up after the test.

    The path is resolved so comparisons with absolute paths computed by
    the code under test hold on systems where the temp dir is a symlink.

    Yields:
        Path to the temporary directory.
    """
    temp_path = Path(tempfile.mkdtemp()).resolve()
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def rebar3_app(temp_dir: Path) -> Path:
    """Create a minimal rebar3 application.

    Layout::

        myapp/
          rebar.config
          rebar.lock
          src/myapp.app.src
          src/myapp.erl

    Returns:
        Path to the application directory.
    """
    app = temp_dir / "myapp"
    (app / "src").mkdir(parents=True)
    (app / "rebar.config").write_text("{erl_opts, [debug_info]}.\n")
    (app / "rebar.lock").write_text("[].\n")
    (app / "src" / "myapp.app.src").write_text("{application, myapp, []}.\n")
    (app / "src" / "myapp.erl").write_text("-module(myapp).\n")
    return app
