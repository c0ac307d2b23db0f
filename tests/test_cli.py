import shlex
import sys

import cli


def _fake_tool(monkeypatch, script):
    monkeypatch.setenv("YTDLP_COMMAND", shlex.join([sys.executable, "-c", script]))


def test_cli_reports_progress_and_completion(monkeypatch, capsys):
    _fake_tool(monkeypatch, "print('[download]  50.0% of 1MiB'); print('[download] 100% of 1MiB')")

    assert cli.main(["https://youtu.be/abc", "--format=mp3", "--quality=128"]) == 0

    out = capsys.readouterr().out
    assert "50.0%" in out
    assert "Download complete!" in out


def test_cli_reports_failure(monkeypatch, capsys):
    _fake_tool(monkeypatch, "import sys; sys.exit(4)")

    assert cli.main(["https://youtu.be/abc"]) == 1
    assert "Download failed with code 4" in capsys.readouterr().err


def test_cli_missing_tool(monkeypatch, capsys):
    monkeypatch.setenv("YTDLP_COMMAND", "/nonexistent/bin/yt-dlp")

    assert cli.main(["https://youtu.be/abc"]) == 1
    assert "not installed" in capsys.readouterr().err


def test_parser_defaults():
    args = cli.build_parser().parse_args(["https://youtu.be/abc"])
    assert (args.format, args.quality, args.output) == ("mp4", "best", "%(title)s.%(ext)s")
