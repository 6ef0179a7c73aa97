"""Tests for tao_release.prompts."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from tao_release.errors import ReleaseAbort
from tao_release.prompts import Prompter


class TestNonInteractive:
    def test_confirm_uses_unattended_answer(self) -> None:
        prompter = Prompter(interactive=False)
        assert prompter.confirm("Merge?", unattended=True) is True
        assert prompter.confirm("Merge?", unattended=False) is False

    def test_confirm_without_answer_aborts(self) -> None:
        with pytest.raises(ReleaseAbort, match="non interactive"):
            Prompter(interactive=False).confirm("Really?")

    def test_text_falls_back_to_default(self) -> None:
        assert Prompter(interactive=False).text("Path?", default="/var/www") == "/var/www"

    def test_choice_without_default_aborts(self) -> None:
        with pytest.raises(ReleaseAbort):
            Prompter(interactive=False).choice("Which?", ["a", "b"])

    @patch("tao_release.prompts.click.confirm")
    def test_never_prompts(self, mock_confirm: MagicMock) -> None:
        Prompter(interactive=False).confirm("Merge?", unattended=True)
        mock_confirm.assert_not_called()

    @patch("tao_release.prompts.threading.Timer")
    def test_no_browser(self, mock_timer: MagicMock) -> None:
        assert Prompter(interactive=False).open_later("https://github.com") is None
        mock_timer.assert_not_called()


class TestInteractive:
    @patch("tao_release.prompts.click.confirm", return_value=True)
    def test_confirm(self, mock_confirm: MagicMock) -> None:
        assert Prompter().confirm("Merge?", default=False, unattended=False) is True
        mock_confirm.assert_called_once_with("Merge?", default=False)

    @patch("tao_release.prompts.click.prompt", return_value="  /var/www/tao  ")
    def test_text_is_stripped(self, _prompt: MagicMock) -> None:
        assert Prompter().text("Path?") == "/var/www/tao"

    @patch("tao_release.prompts.threading.Timer")
    def test_open_later(self, mock_timer: MagicMock) -> None:
        timer = Prompter().open_later("https://github.com/settings/tokens")
        assert timer is mock_timer.return_value
        assert mock_timer.call_args.args[0] == 2.0
        assert mock_timer.call_args.kwargs["args"] == ("https://github.com/settings/tokens",)
        timer.start.assert_called_once()
