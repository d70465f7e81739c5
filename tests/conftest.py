import tempfile
from pathlib import Path

import pytest

from tests.fakes import FakeGateway


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture(autouse=True)
def isolate_config_dir(monkeypatch):
    """Keep configuration files out of the real home directory."""
    with tempfile.TemporaryDirectory(prefix="coldstake-test-") as tmp_dir:
        monkeypatch.setenv("COLDSTAKE_DIR", str(Path(tmp_dir)))
        yield
