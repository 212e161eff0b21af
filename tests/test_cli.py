"""Tests for the command line interface"""

from unittest.mock import patch

import pytest

from tests.fakes import openai_reply
from vauban_ai import cli
from vauban_ai.providers import ImageProvider, TextProvider

PNG_BYTES = b"\x89PNG\r\n\x1a\ncli"


@pytest.fixture
def run_cli(orchestrator):
    """Run ``main`` against the fixture orchestrator with logging left alone"""

    async def _run(*argv: str) -> int:
        with patch.object(cli, "AIOrchestrator", return_value=orchestrator), patch.object(
            cli, "configure_logging"
        ):
            return await cli.main(list(argv))

    return _run


class TestParser:
    def test_actions_are_choices(self):
        args = cli.build_parser().parse_args(["--action", "suggest_tags", "texte"])
        assert args.action == "suggest_tags"
        assert args.prompt == "texte"

    def test_unknown_action_rejected(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--action", "dance", "texte"])


class TestMain:
    @pytest.mark.asyncio
    async def test_tag_suggestions_are_parsed(self, run_cli, vendors, monkeypatch, capsys):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-test-123456")
        vendors.reply(TextProvider.GROQ, 200, json=openai_reply("JavaScript, React, Web3"))

        exit_code = await run_cli("--action", "suggest_tags", "--provider", "groq", "Du texte")

        assert exit_code == 0
        assert "javascript, react, web3" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_error_sets_exit_code(self, run_cli, capsys):
        exit_code = await run_cli("--provider", "gemini", "Bonjour")

        assert exit_code == 1
        assert "NO_PROVIDER" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_image_written_to_output(self, run_cli, orchestrator, vendors, monkeypatch, tmp_path):
        monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf_test_123456")
        vendors.reply(
            ImageProvider.HUGGINGFACE, 200, content=PNG_BYTES, headers={"Content-Type": "image/png"}
        )
        output = tmp_path / "out.png"

        exit_code = await run_cli(
            "--image", "--provider", "huggingface", "--output", str(output), "a lighthouse"
        )

        assert exit_code == 0
        assert output.read_bytes() == PNG_BYTES
        assert len(orchestrator.object_urls) == 0

    @pytest.mark.asyncio
    async def test_no_prompt_prints_help(self, run_cli, capsys):
        assert await run_cli() == 1
        assert "usage" in capsys.readouterr().out.lower()
