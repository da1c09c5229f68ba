"""Tests for the JSON request boundary shared by the CLI and the API."""

import json

import pytest

from mjolnir.services import protocol
from mjolnir.services.protocol import process_request


def request(code, **extra):
    return json.dumps({"code": code, **extra})


class TestAnalyze:
    def test_success(self, solidity_bank):
        """Given a valid request, the analysis result is returned with status 200."""
        status, body = process_request(request(solidity_bank), "analyze")

        payload = json.loads(body)
        assert status == 200
        assert payload["score"] == 86
        assert payload["metrics"] == {
            "performance": 75,
            "security": 75,
            "gas_efficiency": 100,
            "code_quality": 95,
        }
        assert [i["severity"] for i in payload["issues"]] == ["high", "low"]
        assert payload["issues"][0]["line"] == 20

    def test_config_is_applied(self, solidity_bank):
        """Given enabled rules in the request, only those run."""
        raw = request(solidity_bank, config={"enabled_rules": ["event_emission"]})

        _, body = process_request(raw, "analyze")

        assert [i["message"] for i in json.loads(body)["issues"]] == [
            "Missing event emission after state change in 'withdraw'"
        ]

    def test_bytes_input(self, ink_flipper):
        """Given raw bytes, the request is decoded as UTF-8 JSON."""
        status, body = process_request(request(ink_flipper).encode("utf-8"), "analyze")

        assert status == 200
        assert json.loads(body)["score"] == 99

    def test_non_finite_weight_is_rejected(self, solidity_bank):
        """Given a NaN weight, the request is refused before any scoring happens."""
        raw = request(solidity_bank, config={"enabled_rules": [], "custom_weights": {"code_quality": float("nan")}})

        status, body = process_request(raw, "analyze")

        payload = json.loads(body)
        assert status == 400
        assert payload["error_code"] == "INVALID_REQUEST"
        assert payload["details"]["errors"][0]["loc"][:2] == ["config", "custom_weights"]


class TestConvert:
    def test_success_uses_camel_case_keys(self, solidity_flipper):
        """Given a convert request, the result uses the wire field names."""
        raw = request(solidity_flipper, config={"target": "ink"})

        status, body = process_request(raw, "convert")

        payload = json.loads(body)
        assert status == 200
        assert payload["targetType"] == "ink"
        assert "pub fn flip(&mut self)" in payload["convertedCode"]
        assert "compilationOutput" not in payload

    def test_compilation_output_present(self):
        """Given an approximation, compilationOutput is included."""
        raw = request("contract A {\n    uint256 x;\n}\n", config={"target": "ink"})

        _, body = process_request(raw, "convert")

        assert "narrowed" in json.loads(body)["compilationOutput"]

    def test_unknown_target(self, solidity_flipper):
        """Given an unknown target, a 400 configuration error is returned."""
        raw = request(solidity_flipper, config={"target": "move"})

        status, body = process_request(raw, "convert")

        payload = json.loads(body)
        assert status == 400
        assert payload["error"] is True
        assert payload["error_code"] == "CONFIG_ERROR"
        assert payload["details"]["supported_targets"] == ["ink", "solidity"]


class TestErrors:
    @pytest.mark.parametrize(
        "raw",
        [
            "{",
            json.dumps({"dialect": "ink"}),
            json.dumps({"code": ""}),
            json.dumps({"code": 42}),
        ],
    )
    def test_invalid_requests(self, raw):
        """Given malformed JSON or fields, INVALID_REQUEST is returned with 400."""
        status, body = process_request(raw, "analyze")

        payload = json.loads(body)
        assert status == 400
        assert payload["error_code"] == "INVALID_REQUEST"
        assert payload["details"]["errors"]

    def test_missing_convert_config(self, solidity_flipper):
        """Given a convert request without config, it is rejected."""
        status, body = process_request(request(solidity_flipper), "convert")

        assert status == 400
        assert json.loads(body)["error_code"] == "INVALID_REQUEST"

    def test_not_a_contract(self):
        """Given prose, a 422 NOT_A_CONTRACT envelope is returned."""
        status, body = process_request(request("hello world"), "analyze")

        assert status == 422
        assert json.loads(body)["error_code"] == "NOT_A_CONTRACT"

    def test_syntax_error_carries_line(self):
        """Given malformed source, the envelope details hold the line."""
        source = "pragma solidity ^0.8.0;\ncontract A {\n    uint x\n}\n"

        status, body = process_request(request(source), "analyze")

        payload = json.loads(body)
        assert status == 422
        assert payload["error_code"] == "SYNTAX_ERROR"
        assert payload["details"] == {"line": 4}

    def test_unknown_dialect(self, solidity_flipper):
        """Given an unknown dialect name, a 400 configuration error is returned."""
        status, body = process_request(request(solidity_flipper, dialect="vyper"), "analyze")

        assert status == 400
        assert json.loads(body)["details"] == {"supported_dialects": ["ink", "solidity"]}

    def test_unknown_operation(self, solidity_flipper):
        """Given an unknown operation, a configuration error is returned."""
        status, body = process_request(request(solidity_flipper), "compile")

        assert status == 400
        assert json.loads(body)["details"] == {"supported_operations": ["analyze", "convert"]}

    def test_unexpected_failure(self, monkeypatch, solidity_flipper):
        """Given an internal bug, a 500 envelope is still produced."""
        def explode(*_args, **_kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(protocol, "analyze", explode)

        status, body = process_request(request(solidity_flipper), "analyze")

        payload = json.loads(body)
        assert status == 500
        assert payload["error_code"] == "INTERNAL_ERROR"
        assert payload["details"] == {"type": "RuntimeError"}
