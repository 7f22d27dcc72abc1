import unittest

import httpx
from pydantic import ValidationError

from config.settings import Settings
from models.models import Credentials
from translator.errors import ErrorKind, UnexpectedFormatError
from translator.model_catalog import (
    FALLBACK_MODELS,
    ModelCatalogClient,
    match_shape,
    parse_models,
)


class RecordingHandler:
    """记录请求并返回固定响应的 MockTransport 处理器."""

    def __init__(self, response: httpx.Response = None, exc: Exception = None):
        self.response = response
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return self.response


class TestModelCatalogClient(unittest.IsolatedAsyncioTestCase):
    def _client(self, handler, **settings):
        return ModelCatalogClient(
            settings=Settings(**settings), transport=httpx.MockTransport(handler)
        )

    async def test_missing_api_key_skips_network(self):
        handler = RecordingHandler(httpx.Response(200, json={"data": []}))
        catalog = await self._client(handler).list_models(Credentials(api_key="  "))
        self.assertEqual(handler.requests, [])
        self.assertEqual(len(catalog.models), 4)
        self.assertEqual(catalog.models, list(FALLBACK_MODELS))
        self.assertEqual(catalog.error.kind, ErrorKind.MISSING_CREDENTIAL)

    async def test_standard_shape_is_sorted(self):
        handler = RecordingHandler(
            httpx.Response(200, json={"object": "list", "data": [{"id": "b"}, {"id": "a"}]})
        )
        catalog = await self._client(handler).list_models(
            Credentials(api_key="sk-test", base_url="proxy.example.com")
        )
        self.assertIsNone(catalog.error)
        self.assertFalse(catalog.is_fallback)
        self.assertEqual([m.id for m in catalog.models], ["a", "b"])

        request = handler.requests[0]
        self.assertEqual(str(request.url), "https://proxy.example.com/v1/models")
        self.assertEqual(request.method, "GET")
        self.assertEqual(request.headers["Authorization"], "Bearer sk-test")
        self.assertIn("Mozilla", request.headers["User-Agent"])

    async def test_sorting_is_idempotent(self):
        handler = RecordingHandler(
            httpx.Response(200, json=[{"id": "gpt-4o"}, {"id": "claude"}, {"id": "deepseek"}])
        )
        catalog = await self._client(handler).list_models(Credentials(api_key="k"))
        ids = [m.id for m in catalog.models]
        self.assertEqual(ids, sorted(ids))

    async def test_models_key_shape(self):
        handler = RecordingHandler(
            httpx.Response(
                200,
                json={"models": [{"id": "qwen", "owned_by": "ali", "created": 1700000000}]},
            )
        )
        catalog = await self._client(handler).list_models(Credentials(api_key="k"))
        self.assertEqual(len(catalog.models), 1)
        self.assertEqual(catalog.models[0].owned_by, "ali")
        self.assertEqual(catalog.models[0].created, 1700000000)
        self.assertEqual(catalog.models[0].object, "model")

    async def test_non_json_body_falls_back(self):
        handler = RecordingHandler(
            httpx.Response(200, text="<!DOCTYPE html><html>login page</html>")
        )
        catalog = await self._client(handler).list_models(Credentials(api_key="k"))
        self.assertEqual(catalog.models, list(FALLBACK_MODELS))
        self.assertEqual(catalog.error.kind, ErrorKind.BAD_RESPONSE_FORMAT)

    async def test_unexpected_shape_falls_back(self):
        handler = RecordingHandler(httpx.Response(200, json={"object": "list"}))
        catalog = await self._client(handler).list_models(Credentials(api_key="k"))
        self.assertTrue(catalog.is_fallback)
        self.assertEqual(catalog.error.kind, ErrorKind.UNEXPECTED_FORMAT)

    async def test_http_error_is_classified(self):
        handler = RecordingHandler(httpx.Response(401, json={"error": "invalid"}))
        catalog = await self._client(handler).list_models(Credentials(api_key="k"))
        self.assertEqual(catalog.models, list(FALLBACK_MODELS))
        self.assertEqual(catalog.error.kind, ErrorKind.UNAUTHORIZED)

    async def test_connection_error_falls_back(self):
        handler = RecordingHandler(exc=httpx.ConnectError("Connection refused"))
        catalog = await self._client(handler).list_models(Credentials(api_key="k"))
        self.assertEqual(catalog.models, list(FALLBACK_MODELS))
        self.assertEqual(catalog.error.kind, ErrorKind.UNREACHABLE)

    async def test_browser_headers_can_be_disabled(self):
        handler = RecordingHandler(httpx.Response(200, json={"data": []}))
        client = self._client(handler, browser_headers_enabled=False)
        await client.list_models(Credentials(api_key="k"))
        headers = handler.requests[0].headers
        self.assertNotIn("Mozilla", headers.get("User-Agent", ""))
        self.assertNotIn("Sec-Fetch-Mode", headers)

    async def test_injected_fallback_catalog(self):
        custom = FALLBACK_MODELS[:1]
        client = ModelCatalogClient(fallback_models=custom)
        catalog = await client.list_models(Credentials(api_key=""))
        self.assertEqual(catalog.models, list(custom))

    async def test_fallback_catalog_cannot_be_mutated(self):
        catalog = await ModelCatalogClient().list_models(Credentials(api_key=""))
        with self.assertRaises(ValidationError):
            catalog.models[0].id = "hijacked"
        catalog.models.clear()
        self.assertEqual(FALLBACK_MODELS[0].id, "gpt-3.5-turbo")
        self.assertEqual(len(FALLBACK_MODELS), 4)


class TestResponseShapes(unittest.TestCase):
    def test_data_takes_priority_over_models(self):
        shape, entries = match_shape({"data": [{"id": "a"}], "models": []})
        self.assertEqual(shape, "data")
        self.assertEqual(entries, [{"id": "a"}])

    def test_unknown_shape_raises(self):
        with self.assertRaises(UnexpectedFormatError):
            match_shape({"data": "not-a-list"})
        with self.assertRaises(UnexpectedFormatError):
            match_shape("models")

    def test_parse_models_skips_invalid_and_duplicates(self):
        models = parse_models(
            [{"id": "b"}, "junk", {"name": "no-id"}, {"id": "a"}, {"id": "b", "object": "x"}]
        )
        self.assertEqual([m.id for m in models], ["a", "b"])
        self.assertEqual(models[1].object, "model")


if __name__ == "__main__":
    unittest.main()
