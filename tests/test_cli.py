"""Tests for the agegate command line."""

from __future__ import annotations

import json

import pytest
from PIL import Image

from conftest import FakeClassifier
from agegate_core import cli


@pytest.fixture
def fxt_image(tmp_path):
    path = tmp_path / "face.png"
    Image.new("RGB", (64, 48), (180, 140, 120)).save(path)
    return path


def test_consent_then_status(tmp_path, capsys):
    state = tmp_path / "state.json"
    assert cli.main(["consent", "--state", str(state)]) == 0
    assert json.loads(state.read_text())["consentGiven"] is True
    capsys.readouterr()

    assert cli.main(["status", "--state", str(state)]) == 0
    status = json.loads(capsys.readouterr().out)
    assert status["consentGiven"] is True
    assert status["policyState"] == "unset"
    assert status["verificationActive"] is False


def test_analyze_without_consent_exits_2(tmp_path, fxt_image):
    code = cli.main(["analyze", str(fxt_image), "--model", str(tmp_path / "m.onnx"),
                     "--state", str(tmp_path / "state.json"), "--no-face-detection"])
    assert code == 2


def test_analyze_missing_model_exits_1(tmp_path, fxt_image, capsys):
    state = tmp_path / "state.json"
    cli.main(["consent", "--state", str(state)])
    capsys.readouterr()

    code = cli.main(["analyze", str(fxt_image), "--model", str(tmp_path / "missing.onnx"),
                     "--state", str(state), "--no-face-detection"])
    assert code == 1
    assert json.loads(capsys.readouterr().out)["reason_code"] == "IF-005"


def test_analyze_prints_result(tmp_path, fxt_image, capsys, monkeypatch):
    monkeypatch.setattr(cli, "OnnxClassifier", lambda path: FakeClassifier([[0.1, 0.9]]))
    state = tmp_path / "state.json"
    cli.main(["consent", "--state", str(state)])
    capsys.readouterr()

    code = cli.main(["analyze", str(fxt_image), "--model", "unused.onnx",
                     "--state", str(state), "--no-face-detection"])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["verdict"]["label"] == "MAJOR"
    assert out["policy_changed"] is True
    assert json.loads(state.read_text())["isMinor"] is False
