"""Command-line surface."""

import sys

import pytest

from src.main import main


@pytest.mark.parametrize("argv", [["reset", "gemini-2.5-flash"], ["delete"]])
def test_unknown_subcommands_are_rejected(monkeypatch, argv) -> None:
    monkeypatch.setattr(sys, "argv", ["ai-assistant", *argv])
    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 2
