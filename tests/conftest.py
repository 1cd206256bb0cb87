import sys
from pathlib import Path

# Ensure the project root is on sys.path so `app` packages resolve without install
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

from tests.fixtures.stream_fixtures import *  # noqa: E402, F403
