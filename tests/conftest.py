import json
import logging
import sys
from pathlib import Path

import pytest

# Ensure repo_root/src is available on sys.path before any tests import project modules
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


def _w(p: Path, rel: str, content: str = "") -> Path:
    f = p / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(content, encoding="utf-8")
    return f


@pytest.fixture
def sample_app(tmp_path: Path) -> Path:
    """A small mini-program: one page, one component, a util and an orphan."""
    _w(tmp_path, "app.json", json.dumps({"pages": ["pages/index/index"]}))
    _w(tmp_path, "app.js", "App({})\n")
    _w(tmp_path, "app.wxss", "page { color: #333; }\n")
    _w(
        tmp_path,
        "pages/index/index.json",
        json.dumps({"usingComponents": {"card": "/components/card/card"}}),
    )
    _w(tmp_path, "pages/index/index.js", "const fmt = require('../../utils/format')\nPage({})\n")
    _w(tmp_path, "pages/index/index.wxml", "<card />\n")
    _w(tmp_path, "pages/index/index.wxss", "@import '../../styles/base.wxss';\n")
    _w(tmp_path, "components/card/card.json", json.dumps({"component": True}))
    _w(tmp_path, "components/card/card.js", "Component({})\n")
    _w(tmp_path, "components/card/card.wxml", "<view>card</view>\n")
    _w(tmp_path, "utils/format.js", "module.exports = {}\n")
    _w(tmp_path, "utils/orphan.js", "module.exports = {}\n")
    _w(tmp_path, "styles/base.wxss", ".base {}\n")
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_mplens_logging():
    """Drop handlers the CLI installs so they never outlive a captured stream."""
    yield
    logger = logging.getLogger("mplens")
    for handler in list(logger.handlers):
        if getattr(handler, "_mplens_handler", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
