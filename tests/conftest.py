import sys
import pytest

from pathlib import Path

SRC_PATH = str(Path(__file__).resolve().parent.parent)

if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

@pytest.fixture(scope="function")
def configdir(tmp_path: Path) -> Path:
    path = tmp_path / 'logmonitor'
    (path / 'notifications.d').mkdir(parents=True)
    (path / 'targets.d').mkdir(parents=True)
    return path
