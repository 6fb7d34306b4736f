"""
conftest.py — puts the project root on sys.path so pytest can import
phase_02_cleaning and its sibling phase packages without an install.
"""
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parent.parent.parent   # project root

if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))
