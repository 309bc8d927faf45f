def assert_error_response(response, status_code, error_code):
    """Assert a JSON error response carries the expected status and stable error code."""
    assert response.status_code == status_code, response.text
    payload = response.json()
    assert payload["error"] == error_code, payload
    assert payload.get("message"), "Error responses must carry a message"
    return payload


def config_payload(**overrides):
    """Minimal valid create-configuration payload."""
    payload = {
        "name": "My OpenAI",
        "endpoint_url": "https://api.example.com/v1/chat/completions",
        "secret": "sk-plain-secret",
        "model_name": "m",
        "request_template": {"model": "m", "messages": []},
    }
    payload.update(overrides)
    return payload
