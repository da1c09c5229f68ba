"""Tests for the command-line entry point."""

import io
import json

from mjolnir.cli import main


class TestCli:
    def test_analyze_file(self, tmp_path, capsys, solidity_bank):
        """Given a request file, the result is printed and the exit status is 0."""
        path = tmp_path / "request.json"
        path.write_text(json.dumps({"code": solidity_bank}))

        status = main(["analyze", str(path)])

        out = capsys.readouterr().out
        assert status == 0
        assert json.loads(out)["score"] == 86
        assert out.endswith("\n")

    def test_convert_stdin(self, monkeypatch, capsys, ink_flipper):
        """Given a request on stdin, conversion reads it from there."""
        raw = json.dumps({"code": ink_flipper, "config": {"target": "solidity"}}).encode("utf-8")
        monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(raw)))

        status = main(["convert"])

        payload = json.loads(capsys.readouterr().out)
        assert status == 0
        assert payload["targetType"] == "solidity"
        assert "contract Flipper {" in payload["convertedCode"]

    def test_error_envelope_exits_one(self, tmp_path, capsys):
        """Given a request that fails, the envelope is printed and the status is 1."""
        path = tmp_path / "request.json"
        path.write_text(json.dumps({"code": "hello world"}))

        status = main(["analyze", str(path)])

        assert status == 1
        assert json.loads(capsys.readouterr().out)["error_code"] == "NOT_A_CONTRACT"

    def test_missing_file(self, tmp_path, capsys):
        """Given a missing file, nothing is printed to stdout and the status is 1."""
        status = main(["analyze", str(tmp_path / "absent.json")])

        captured = capsys.readouterr()
        assert status == 1
        assert captured.out == ""
        assert "cannot read" in captured.err
