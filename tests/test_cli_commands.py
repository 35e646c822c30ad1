"""Tests for CLI commands using click.testing.CliRunner."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from stickerlab.cli import main
from stickerlab.error_handling import ConversionError, RetrievalError
from stickerlab.models import (
    ConversionOutcome,
    FailedSticker,
    Failure,
    FailureCategory,
    PackSaveResult,
    SavedVariant,
    StickerKind,
    StickerRecord,
)
from stickerlab.spritesheet import PackSpriteResult
from stickerlab.system_tools import ToolInfo

STORE_URL = "https://store.line.me/stickershop/product/27319218/en"

RECORDS = [
    StickerRecord("27319218", "https://cdn.test/main.png", StickerKind.STATIC),
    StickerRecord("700", "https://cdn.test/sticker/700/animation.png", StickerKind.ANIMATED),
    StickerRecord("701", "https://cdn.test/sticker/701/sticker.png", StickerKind.STATIC),
]


@pytest.fixture
def runner():
    return CliRunner()


class TestMainCLI:
    def test_main_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "StickerLab" in result.output
        for command in ("scrape", "download", "convert", "sprite", "tools"):
            assert command in result.output

    def test_main_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "stickerlab, version 0.1.0" in result.output

    def test_main_invalid_command(self, runner):
        result = runner.invoke(main, ["invalid-command"])

        assert result.exit_code == 2
        assert "No such command" in result.output

    def test_log_dir_creates_log_file(self, runner, tmp_path):
        with patch("stickerlab.cli.tools_cmd.get_available_tools", return_value={}):
            result = runner.invoke(main, ["--log-dir", str(tmp_path / "logs"), "tools"])

        assert result.exit_code == 0
        assert list((tmp_path / "logs").glob("stickerlab_*.log"))


class TestScrapeCommand:
    @patch("stickerlab.cli.scrape_cmd.get_sticker_info", return_value=RECORDS)
    def test_json_output(self, mock_scrape, runner):
        result = runner.invoke(main, ["scrape", STORE_URL, "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [r["id"] for r in data] == ["27319218", "700", "701"]
        assert data[1]["type"] == "ANIMATED"
        mock_scrape.assert_called_once_with(STORE_URL)

    @patch("stickerlab.cli.scrape_cmd.get_sticker_info", return_value=RECORDS)
    def test_table_output(self, _mock, runner):
        result = runner.invoke(main, ["scrape", STORE_URL])

        assert result.exit_code == 0
        assert "700" in result.output
        assert "ANIMATED" in result.output

    @patch(
        "stickerlab.cli.scrape_cmd.get_sticker_info",
        side_effect=RetrievalError("GET https://store.line.me/x failed"),
    )
    def test_fetch_failure(self, _mock, runner):
        result = runner.invoke(main, ["scrape", STORE_URL])

        assert result.exit_code == 1
        assert "❌ Scrape failed" in result.output


class TestDownloadCommand:
    @patch("stickerlab.cli.download_cmd.save_sticker_pack")
    @patch("stickerlab.cli.download_cmd.get_sticker_info", return_value=RECORDS)
    def test_download_with_conversion(self, _scrape, mock_save, runner, tmp_path):
        mock_save.return_value = PackSaveResult(
            base_dir="line-packs-v2/27319218",
            saved=[SavedVariant("700", "u", "d", "f", conversions=["f.gif"])],
        )

        result = runner.invoke(
            main,
            ["download", STORE_URL, "-o", str(tmp_path), "--convert", "gif", "--workers", "3"],
        )

        assert result.exit_code == 0, result.output
        args, kwargs = mock_save.call_args
        assert args[0] == "27319218"
        assert [r.id for r in args[1]] == ["27319218", "700", "701"]
        assert kwargs["convert_formats"] == ("gif",)
        assert kwargs["workers"] == 3
        assert kwargs["layout"].root == tmp_path
        assert "✅ Download completed" in result.output

    @patch("stickerlab.cli.download_cmd.save_sticker_pack_simple")
    @patch("stickerlab.cli.download_cmd.get_sticker_info", return_value=RECORDS)
    def test_simple_download(self, _scrape, mock_simple, runner, tmp_path):
        mock_simple.return_value = PackSaveResult(base_dir="line-packs-simple/27319218")

        result = runner.invoke(main, ["download", STORE_URL, "-o", str(tmp_path), "--simple"])

        assert result.exit_code == 0
        assert mock_simple.call_args.kwargs["root"] == tmp_path

    @patch("stickerlab.cli.download_cmd.save_sticker_pack")
    @patch("stickerlab.cli.download_cmd.get_sticker_info", return_value=RECORDS)
    def test_failed_stickers_exit_nonzero(self, _scrape, mock_save, runner, tmp_path):
        mock_save.return_value = PackSaveResult(
            base_dir="x", failed=[FailedSticker("701", "404 for url")]
        )

        result = runner.invoke(main, ["download", STORE_URL, "-o", str(tmp_path)])

        assert result.exit_code == 1
        assert "701: 404 for url" in result.output

    @patch("stickerlab.cli.download_cmd.get_sticker_info", return_value=[])
    def test_no_stickers(self, _scrape, runner):
        result = runner.invoke(main, ["download", STORE_URL])
        assert result.exit_code == 1

    def test_invalid_workers(self, runner):
        result = runner.invoke(main, ["download", STORE_URL, "--workers", "0"])
        assert result.exit_code == 2


class TestConvertCommand:
    def test_convert_local_file(self, runner, apng_file, no_external_tools):
        result = runner.invoke(main, ["convert", str(apng_file), "--format", "gif", "--loop", "2"])

        assert result.exit_code == 0, result.output
        assert "✅ Converted with pillow-gif" in result.output
        assert apng_file.with_suffix(".gif").exists()

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, ["convert", str(tmp_path / "nope.png")])

        assert result.exit_code == 2
        assert "File not found" in result.output

    def test_options_forwarded(self, runner, apng_file):
        outcome = ConversionOutcome(output_path=apng_file.with_suffix(".gif"), strategy="fake")
        with patch("stickerlab.cli.convert_cmd.run_conversion", return_value=outcome) as mock_run:
            result = runner.invoke(
                main,
                [
                    "convert",
                    str(apng_file),
                    "--max-frame-duration",
                    "200",
                    "--on-frame-error",
                    "skip",
                    "--colors",
                    "64",
                    "--background",
                    "white",
                    "--transparency-threshold",
                    "100",
                ],
            )

        assert result.exit_code == 0, result.output
        request = mock_run.call_args.args[0]
        assert request.options.max_frame_duration_ms == 200
        assert request.options.skip_bad_frames
        assert request.options.color_count == 64
        assert request.options.background_color == "white"
        assert request.options.transparency_threshold == 100

    def test_url_source_uses_output_dir(self, runner, tmp_path):
        outcome = ConversionOutcome(output_path=tmp_path / "animation.webp", strategy="fake")
        with patch("stickerlab.cli.convert_cmd.run_conversion", return_value=outcome) as mock_run:
            result = runner.invoke(
                main,
                [
                    "convert",
                    "https://cdn.test/sticker/1/animation.png",
                    "-f",
                    "webp",
                    "-o",
                    str(tmp_path),
                ],
            )

        assert result.exit_code == 0, result.output
        request = mock_run.call_args.args[0]
        assert request.source_path == tmp_path / "animation.png"
        assert request.destination_path == tmp_path / "animation.webp"

    def test_all_strategies_failed(self, runner, apng_file):
        error = ConversionError(
            "All strategies failed",
            category=FailureCategory.DECODE_ERROR,
            attempts=(Failure(FailureCategory.DECODE_ERROR, "bad", "pillow-gif"),),
        )
        with patch("stickerlab.cli.convert_cmd.run_conversion", side_effect=error):
            result = runner.invoke(main, ["convert", str(apng_file)])

        assert result.exit_code == 1
        assert "pillow-gif: decode_error" in result.output
        assert "❌ Convert failed" in result.output


class TestSpriteCommand:
    @patch("stickerlab.cli.sprite_cmd.build_sprite_for_pack")
    @patch("stickerlab.cli.sprite_cmd.get_sticker_info", return_value=RECORDS)
    def test_sprite(self, _scrape, mock_build, runner, tmp_path):
        mock_build.return_value = PackSpriteResult()

        result = runner.invoke(
            main,
            [
                "sprite",
                STORE_URL,
                "--base-public-url",
                "https://x.test/",
                "-o",
                str(tmp_path),
                "--cols",
                "4",
                "--label",
                "Waving",
            ],
        )

        assert result.exit_code == 0, result.output
        kwargs = mock_build.call_args.kwargs
        assert kwargs["base_public_url"] == "https://x.test/"
        assert kwargs["root"] == tmp_path
        assert kwargs["cols"] == 4
        assert kwargs["label"] == "Waving"
        assert "no animated stickers" in result.output


class TestToolsCommand:
    def test_tools_table(self, runner):
        tools = {
            "ffmpeg": ToolInfo(name="ffmpeg", available=True, version="6.1"),
            "imagemagick": ToolInfo(name="magick", available=False),
        }
        with patch("stickerlab.cli.tools_cmd.get_available_tools", return_value=tools):
            result = runner.invoke(main, ["tools"])

        assert result.exit_code == 0
        assert "ffmpeg" in result.output
        assert "6.1" in result.output
        assert "missing" in result.output


def test_entry_module_exposes_main():
    from stickerlab.cli_entry import main as entry_main

    assert entry_main is main
