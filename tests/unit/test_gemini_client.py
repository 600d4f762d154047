import asyncio
import json
import unittest

import httpx

from cinechronic.services.gemini_client import GeminiClient, GenerationError, GenerationResult


def client_returning(status, payload):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(status, json=payload)

    return GeminiClient(api_key="k", model="test-model", transport=httpx.MockTransport(handler)), seen


class TestGeminiClient(unittest.TestCase):
    def test_generate_joins_candidate_parts(self):
        client, seen = client_returning(200, {
            "candidates": [{"content": {"parts": [{"text": "Nolan "}, {"text": "Essentials"}]}}]
        })

        text = asyncio.run(client.generate("name it", options={"temperature": 0.7}))

        self.assertEqual(text, "Nolan Essentials")
        request = seen[0]
        self.assertTrue(request.url.path.endswith("/models/test-model:generateContent"))
        self.assertEqual(request.url.params["key"], "k")
        body = json.loads(request.content)
        self.assertEqual(body["contents"][0]["parts"][0]["text"], "name it")
        self.assertEqual(body["generationConfig"], {"temperature": 0.7})

    def test_http_error_raises_generation_error(self):
        client, _ = client_returning(500, {"error": {"message": "down"}})
        with self.assertRaises(GenerationError) as ctx:
            asyncio.run(client.generate("x"))
        self.assertEqual(ctx.exception.stage, "request")

    def test_missing_candidates_raises(self):
        client, _ = client_returning(200, {"candidates": []})
        with self.assertRaises(GenerationError) as ctx:
            asyncio.run(client.generate("x"))
        self.assertEqual(ctx.exception.stage, "response")

    def test_blank_text_raises(self):
        client, _ = client_returning(200, {"candidates": [{"content": {"parts": [{"text": "   "}]}}]})
        with self.assertRaises(GenerationError):
            asyncio.run(client.generate("x"))


class TestGenerationResult(unittest.TestCase):
    def test_success_and_failure(self):
        ok = GenerationResult.success("value")
        self.assertTrue(ok.ok)
        self.assertEqual(ok.value, "value")

        failed = GenerationResult.failure("rating", "unusable")
        self.assertFalse(failed.ok)
        self.assertEqual(failed.error.stage, "rating")
        self.assertEqual(str(failed.error), "rating: unusable")


if __name__ == "__main__":
    unittest.main()
