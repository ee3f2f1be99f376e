import sys
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so `import biosketch` works when running pytest from anywhere
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from biosketch.template import clear_template_cache, load_template  # noqa: E402


@pytest.fixture
def template():
    clear_template_cache()
    return load_template()
