"""Test configuration — make the repo root importable and keep bcrypt fast."""

import sys
from pathlib import Path
from unittest.mock import patch

import bcrypt
import pytest

ROOT = Path(__file__).resolve().parent.parent

# Running `pytest` from a checkout without `pip install -e .` still finds
# the waitboard package.
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def fast_bcrypt():
    """Cheap bcrypt work factor so sign-up/sign-in tests stay quick."""
    salt = bcrypt.gensalt(rounds=4)
    with patch("bcrypt.gensalt", return_value=salt):
        yield
