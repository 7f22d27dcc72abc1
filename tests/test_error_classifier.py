import json
import unittest

import httpx
import openai

from translator.endpoint_resolver import EndpointKind
from translator.errors import (
    ClassifiedError,
    ErrorKind,
    ResponseFormatError,
    UnexpectedFormatError,
    UpstreamHTTPError,
    classify,
    sanitize_message,
)


def _status_error(status_code: int, body: dict) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://api.example.com/v1/chat/completions")
    response = httpx.Response(status_code, json=body, request=request)
    return openai.APIStatusError(
        json.dumps(body), response=response, body=body
    )


class TestErrorClassifier(unittest.TestCase):
    def test_status_codes(self):
        cases = {
            401: ErrorKind.UNAUTHORIZED,
            403: ErrorKind.FORBIDDEN,
            404: ErrorKind.ENDPOINT_NOT_FOUND,
            429: ErrorKind.RATE_LIMITED,
        }
        for status, kind in cases.items():
            self.assertEqual(classify(UpstreamHTTPError(status, "nope")).kind, kind)

    def test_forbidden_by_waf(self):
        error = classify(
            UpstreamHTTPError(403, "<html>Sorry, you have been blocked</html>")
        )
        self.assertEqual(error.kind, ErrorKind.ENDPOINT_BLOCKED)
        error = classify(UpstreamHTTPError(403, "Attention Required! | Cloudflare"))
        self.assertEqual(error.kind, ErrorKind.ENDPOINT_BLOCKED)

    def test_not_found_message_depends_on_operation(self):
        models = classify(UpstreamHTTPError(404, ""), EndpointKind.MODELS)
        chat = classify(UpstreamHTTPError(404, ""), EndpointKind.CHAT)
        self.assertIn("Models endpoint", models.message)
        self.assertIn("Base URL", chat.message)

    def test_sdk_status_errors(self):
        error = classify(_status_error(401, {"error": {"message": "bad key"}}))
        self.assertEqual(error.kind, ErrorKind.UNAUTHORIZED)
        error = classify(_status_error(429, {"error": {"message": "slow down"}}))
        self.assertEqual(error.kind, ErrorKind.RATE_LIMITED)

    def test_connection_refused(self):
        request = httpx.Request("GET", "https://nowhere.invalid/v1/models")
        error = classify(httpx.ConnectError("[Errno 111] Connection refused", request=request))
        self.assertEqual(error.kind, ErrorKind.UNREACHABLE)
        self.assertEqual(classify(OSError("getaddrinfo ENOTFOUND")).kind, ErrorKind.UNREACHABLE)

    def test_model_mentioned(self):
        error = classify(
            UpstreamHTTPError(400, '{"error": "The model `gpt-9` does not exist"}'),
            model="gpt-9",
        )
        self.assertEqual(error.kind, ErrorKind.MODEL_UNAVAILABLE)
        self.assertIn('"gpt-9"', error.message)

    def test_format_errors(self):
        self.assertEqual(
            classify(ResponseFormatError("Invalid JSON response: model")).kind,
            ErrorKind.BAD_RESPONSE_FORMAT,
        )
        try:
            json.loads("<html>")
        except json.JSONDecodeError as e:
            self.assertEqual(classify(e).kind, ErrorKind.BAD_RESPONSE_FORMAT)
        self.assertEqual(
            classify(UnexpectedFormatError("keys: object")).kind,
            ErrorKind.UNEXPECTED_FORMAT,
        )

    def test_network_errors(self):
        request = httpx.Request("GET", "https://api.example.com/v1/models")
        self.assertEqual(
            classify(httpx.ReadTimeout("timed out", request=request)).kind,
            ErrorKind.NETWORK_ERROR,
        )
        self.assertEqual(
            classify(RuntimeError("failed to fetch")).kind, ErrorKind.NETWORK_ERROR
        )

    def test_classified_error_passes_through(self):
        original = ClassifiedError(ErrorKind.EMPTY_RESULT)
        self.assertIs(classify(original), original)

    def test_unknown_strips_html_and_truncates(self):
        body = "<!DOCTYPE html><html><body><h1>502 Bad Gateway</h1></body></html>"
        error = classify(UpstreamHTTPError(502, body + "upstream exploded"))
        self.assertEqual(error.kind, ErrorKind.UNKNOWN)
        self.assertNotIn("<", error.message)
        self.assertNotIn("DOCTYPE", error.message)
        self.assertEqual(error.message, "upstream exploded")

        error = classify(UpstreamHTTPError(500, "x" * 1000))
        self.assertEqual(error.kind, ErrorKind.UNKNOWN)
        self.assertLessEqual(len(error.message), 200)

    def test_unknown_generic_message(self):
        html = "<!DOCTYPE html><html><body>oops</body></html>"
        self.assertEqual(
            classify(RuntimeError(html), EndpointKind.CHAT).message, "Translation failed"
        )
        self.assertEqual(
            classify(RuntimeError(html), EndpointKind.MODELS).message,
            "Failed to fetch models",
        )

    def test_sanitize_message(self):
        self.assertEqual(sanitize_message("HTTP 500: internal   error"), "internal error")
        self.assertEqual(
            sanitize_message("<div>gateway <b>timeout</b></div>"), "gateway timeout"
        )


if __name__ == "__main__":
    unittest.main()
