import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

from modpack_cache.config.settings import HttpSettings, Settings



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



@pytest.fixture
def writeDefinition(tmp_path: Path) -> Callable[[str, str], Path]:
    """Writes `text` to `<tmp_path>/pack/<relPath>` and returns the file path."""
    root = tmp_path / "pack"
    root.mkdir(exist_ok=True)

    def _write(relPath: str, text: str) -> Path:
        path = root / relPath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write



@pytest.fixture
def packDir(tmp_path: Path) -> Path:
    root = tmp_path / "pack"
    root.mkdir(exist_ok=True)
    return root



@pytest.fixture
def fastSettings(tmp_path: Path) -> Settings:
    """Settings with no retry delays and the cache inside tmp_path."""
    return Settings.model_validate({
        "cache": {"path": str(tmp_path / "cache" / "resolutions.json5")},
        "http": HttpSettings(retries=0, backoffBaseMs=0, backoffMaxMs=0, http2=False).model_dump(),
        "curseforge": {"apiKey": "test-key-0000"},
    })



@pytest.fixture
def mockClient():
    """Factory for AsyncClients backed by httpx.MockTransport."""
    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)

    return _make
