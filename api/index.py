import sys
from pathlib import Path

# Make the collabquest package importable when deployed from the repo root
repo_root = Path(__file__).parent.parent
if str(repo_root.absolute()) not in sys.path:
    sys.path.insert(0, str(repo_root.absolute()))

from collabquest.app import app
