"""Test configuration for ensuring package imports.

Puts the repository root on ``sys.path`` so ``teamsync_bot`` is importable
when the tests run from a plain checkout, without ``pip install -e .``.
"""

import os
import sys

ROOT_DIR = os.path.abspath(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)
