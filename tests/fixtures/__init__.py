"""Test fixtures for RuntimeKit tests.

- runtimes: archive builders, fake runtimes (shell scripts) and a small
  language registry

Import helpers in your tests using:
    from tests.fixtures.runtimes import build_archive, make_script
"""

__all__ = [
    "runtimes",
]
