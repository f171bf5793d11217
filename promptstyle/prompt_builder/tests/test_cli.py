import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from promptstyle.prompt_builder import __main__ as prompt_cli  # noqa: E402


@pytest.fixture
def cli_args(tmp_path):
    config_path = tmp_path / "config.yaml"
    return ["--config", str(config_path), "--state-dir", str(tmp_path / "state")]


def test_cli_composes_prompt(cli_args, capsys):
    code = prompt_cli.main(
        cli_args
        + ["compose", "--base", "a hero rises", "--select", "music_instrument=braams", "--select", "music_mood=tense"]
    )
    output = capsys.readouterr().out.strip()

    assert code == 0
    assert output == "movie trailer, featuring Braams, with Tense a hero rises"


def test_cli_saves_and_composes_from_preset(cli_args, capsys):
    assert prompt_cli.main(cli_args + ["presets", "save", "Noir", "--select", "visual_style=dark", "--intensity", "high"]) == 0
    capsys.readouterr()

    assert prompt_cli.main(cli_args + ["compose", "--preset", "Noir", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)

    assert payload["intensity"] == "high"
    assert payload["selections"]["visual_style"] == ["Dark"]
    assert "Use powerful trailer music with high intensity" in payload["prompt"]


def test_cli_refuses_overwrite_without_force(cli_args, capsys):
    prompt_cli.main(cli_args + ["presets", "save", "Noir"])
    capsys.readouterr()

    code = prompt_cli.main(cli_args + ["presets", "save", "Noir", "--select", "genre=horror"])

    assert code == 1
    assert "already exists" in capsys.readouterr().err
    assert prompt_cli.main(cli_args + ["presets", "save", "Noir", "--force"]) == 0


def test_cli_lists_and_deletes_presets(cli_args, capsys):
    prompt_cli.main(cli_args + ["presets", "save", "beta"])
    prompt_cli.main(cli_args + ["presets", "save", "alpha"])
    capsys.readouterr()

    prompt_cli.main(cli_args + ["presets", "list"])
    assert capsys.readouterr().out.split() == ["alpha", "beta"]

    assert prompt_cli.main(cli_args + ["presets", "delete", "ghost"]) == 0
    assert "nothing deleted" in capsys.readouterr().out


def test_cli_rejects_unknown_option(cli_args, capsys):
    code = prompt_cli.main(cli_args + ["compose", "--select", "genre=western"])

    assert code == 1
    assert "unknown option" in capsys.readouterr().err


def test_cli_show_missing_preset(cli_args, capsys):
    code = prompt_cli.main(cli_args + ["presets", "show", "ghost"])

    assert code == 1
    assert "Preset 'ghost' not found" in capsys.readouterr().err
