"""Tests for the HTTP API."""

from mjolnir.middleware.rate_limiter import PIPELINE_RATE_LIMIT


class TestHealth:
    def test_health(self, client):
        """Given a running app, /health reports ok."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": "0.1.0"}

    def test_request_id_is_echoed(self, client):
        """Given an X-Request-ID header, the same id comes back on the response."""
        response = client.get("/health", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"

    def test_request_id_is_generated(self, client):
        """Given no request id, one is generated for the response."""
        response = client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 16


class TestAnalyzeEndpoint:
    def test_analyze(self, client, solidity_bank):
        """Given a contract, the analysis result is returned."""
        response = client.post("/api/v1/analyze", json={"code": solidity_bank})

        body = response.json()
        assert response.status_code == 200
        assert body["score"] == 86
        assert body["issues"][0]["severity"] == "high"

    def test_missing_code(self, client):
        """Given no code field, a 400 INVALID_REQUEST envelope is returned."""
        response = client.post("/api/v1/analyze", json={"dialect": "ink"})

        body = response.json()
        assert response.status_code == 400
        assert body["error"] is True
        assert body["error_code"] == "INVALID_REQUEST"

    def test_not_a_contract(self, client):
        """Given prose, a 422 NOT_A_CONTRACT envelope is returned."""
        response = client.post("/api/v1/analyze", json={"code": "just some text"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "NOT_A_CONTRACT"

    def test_oversized_body(self, client):
        """Given a body above the size limit, 413 is returned before parsing."""
        response = client.post("/api/v1/analyze", json={"code": "x" * 250_000})

        assert response.status_code == 413
        assert response.json()["error_code"] == "PAYLOAD_TOO_LARGE"


class TestConvertEndpoint:
    def test_convert(self, client, solidity_flipper):
        """Given a Solidity contract and an ink target, ink! code is returned."""
        response = client.post(
            "/api/v1/convert",
            json={"code": solidity_flipper, "config": {"target": "INK"}},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["targetType"] == "ink"
        assert "#[ink::contract]" in body["convertedCode"]
        assert "compilationOutput" not in body

    def test_unknown_target(self, client, solidity_flipper):
        """Given an unknown target, a 400 CONFIG_ERROR envelope is returned."""
        response = client.post(
            "/api/v1/convert",
            json={"code": solidity_flipper, "config": {"target": "cairo"}},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "CONFIG_ERROR"

    def test_opaque_function_body_converts(self, client):
        """Given a function holding only assembly, the conversion succeeds with a limitation."""
        source = "contract Asm {\n    function f() public {\n        assembly { let x := 1 }\n    }\n}\n"

        response = client.post("/api/v1/convert", json={"code": source, "config": {"target": "ink"}})

        payload = response.json()
        assert response.status_code == 200
        assert "// unsupported: assembly { let x := 1 }" in payload["code"]
        assert "'assembly' could not be translated" in payload["compilationOutput"]

    def test_unsupported_construct(self, client):
        """Given nothing convertible, a 422 UNSUPPORTED_CONSTRUCT envelope is returned."""
        source = "contract Asm {\n    constructor() {\n        assembly { let x := 1 }\n    }\n}\n"

        response = client.post("/api/v1/convert", json={"code": source, "config": {"target": "ink"}})

        assert response.status_code == 422
        assert response.json()["details"] == {"construct": "assembly", "line": 3}


def test_rate_limit(client, ink_flipper):
    """Given more requests than the budget allows, 429 is returned."""
    budget = int(PIPELINE_RATE_LIMIT.split("/")[0])
    statuses = [
        client.post("/api/v1/analyze", json={"code": ink_flipper}).status_code
        for _ in range(budget + 1)
    ]

    assert statuses[:budget] == [200] * budget
    assert statuses[budget] == 429
    assert client.get("/health").status_code == 200
