"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from pathlib import Path

import pytest
from fswarden.filesystem.paths import PathNormalizer
from fswarden.filesystem.restrictions import RestrictionSet


@pytest.fixture
def normalizer(tmp_path: Path) -> PathNormalizer:
    """PathNormalizer rooted at a temporary working and home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return PathNormalizer(tmp_path, home=home)


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """Small directory tree for traversal tests.

    Layout::

        tree/
            a.txt
            b.log
            .hidden.txt
            sub/
                c.txt
                d.bin
    """
    root = tmp_path / "tree"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("alpha")
    (root / "b.log").write_text("bravo")
    (root / ".hidden.txt").write_text("hidden")
    (root / "sub" / "c.txt").write_text("charlie")
    (root / "sub" / "d.bin").write_bytes(b"\x00\x01")
    return root


@pytest.fixture
def tree_restrictions(tree: Path) -> RestrictionSet:
    """Writable restrictions covering the sample tree."""
    return RestrictionSet.writable(str(tree), label="tree")


@pytest.fixture
def mock_mounts_output() -> str:
    """Sample /proc/mounts content for testing."""
    return """sysfs /sys sysfs rw,nosuid,nodev,noexec,relatime 0 0
proc /proc proc rw,nosuid,nodev,noexec,relatime 0 0
/dev/sda1 / ext4 rw,relatime,errors=remount-ro 0 1
/dev/sda2 /home ext4 rw,relatime 0 2
tmpfs /run/user/1000 tmpfs rw,nosuid,nodev,relatime,size=1620368k,mode=700 0 0
/dev/sdb1 /media/usb\\040drive vfat ro,relatime 0 0
"""


@pytest.fixture
def mock_empty_output() -> str:
    """Empty output for testing edge cases."""
    return ""


@pytest.fixture
def mock_malformed_mounts() -> str:
    """Mount table with a truncated line."""
    return """/dev/sda1 / ext4 rw,relatime 0 1
/dev/sda2 /home ext4
"""
