"""
Pytest configuration for the ingredient scanner tests.
"""
import sys
from pathlib import Path

# Add repo root to path for imports
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))
