"""
Unit tests for the canvas-refine CLI.

Commands run through click's CliRunner against the mocked image client: the
`refine` command drives a real RefineSession, reading the canvas from a file
and writing the layer PNG into tmp_path.
"""

import pytest
from click.testing import CliRunner

from canvas_refine import cli as cli_module
from canvas_refine.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def cli_wiring(monkeypatch, refine_session, mock_image_client, credential_store):
    """Point the CLI at the test session instead of the process singletons."""
    monkeypatch.setattr(cli_module, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(cli_module, "get_refine_session", lambda: refine_session)
    monkeypatch.setattr(cli_module, "get_image_client", lambda: mock_image_client)
    monkeypatch.setattr(cli_module, "get_credential_store", lambda: credential_store)


@pytest.fixture
def canvas_file(tmp_path, png_bytes):
    path = tmp_path / "canvas.png"
    path.write_bytes(png_bytes)
    return path


def test_version(runner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_refine_writes_layer_file(
    runner, tmp_path, canvas_file, mock_image_client, make_response, png_bytes, generated_bytes
):
    mock_image_client.edit_image.return_value = make_response(200, image=generated_bytes)
    out_dir = tmp_path / "layers"

    result = runner.invoke(
        cli, ["refine", str(canvas_file), "--out-dir", str(out_dir), "--preset", "restore"]
    )

    assert result.exit_code == 0, result.output
    layer = out_dir / "Refined_Output.png"
    assert layer.read_bytes() == generated_bytes
    assert "Done. New layer 'Refined Output' added." in result.output
    assert f"Layer written to {layer} (auto)" in result.output

    request = mock_image_client.edit_image.call_args.args[0]
    assert request.image == png_bytes
    assert request.prompt.startswith("Make this photo look")
    mock_image_client.close.assert_awaited_once()


def test_refine_custom_prompt_and_size(
    runner, tmp_path, canvas_file, mock_image_client, make_response, generated_bytes
):
    mock_image_client.edit_image.return_value = make_response(200, image=generated_bytes)

    result = runner.invoke(
        cli,
        [
            "refine",
            str(canvas_file),
            "--out-dir",
            str(tmp_path / "layers"),
            "--prompt",
            "Make it a watercolor.",
            "--size",
            "1536x1024",
        ],
    )

    assert result.exit_code == 0, result.output
    request = mock_image_client.edit_image.call_args.args[0]
    assert request.prompt == "Make it a watercolor."
    assert request.size.value == "1536x1024"
    assert "(1536x1024)" in result.output


def test_refine_missing_input(runner, tmp_path, mock_image_client):
    result = runner.invoke(cli, ["refine", str(tmp_path / "missing.png")])

    assert result.exit_code == 1
    assert "No open document" in result.output
    mock_image_client.edit_image.assert_not_awaited()


def test_refine_without_key(runner, tmp_path, canvas_file, credential_store, mock_image_client):
    credential_store.path.unlink()

    result = runner.invoke(cli, ["refine", str(canvas_file), "--out-dir", str(tmp_path / "layers")])

    assert result.exit_code == 1
    assert "Enter your OpenAI API key first." in result.output
    mock_image_client.edit_image.assert_not_awaited()


def test_refine_exhausted_exits_nonzero(
    runner, tmp_path, canvas_file, mock_image_client, make_response
):
    mock_image_client.edit_image.side_effect = [
        make_response(400, body_text="auto not supported"),
        make_response(400, body_text="image too large"),
    ]
    out_dir = tmp_path / "layers"

    result = runner.invoke(cli, ["refine", str(canvas_file), "--out-dir", str(out_dir)])

    assert result.exit_code == 1
    assert "Image API error 400. image too large" in result.output
    assert "Layer written" not in result.output
    assert not out_dir.exists()
    mock_image_client.close.assert_awaited_once()


def test_set_key(runner, credential_store):
    result = runner.invoke(cli, ["set-key", "  sk-new-key  "])

    assert result.exit_code == 0
    assert credential_store.load() == "sk-new-key"
    assert "sk-new-key" not in result.output
    assert str(credential_store.path) in result.output


def test_set_blank_key_is_rejected(runner, credential_store):
    result = runner.invoke(cli, ["set-key", "   "])

    assert result.exit_code == 2
    assert credential_store.load() == "sk-test"
