"""Tests for the knowledge-base chat client and source selection."""

from __future__ import annotations

import unittest
from unittest import mock

import requests

from conftest import FakeResponse
from link_weaver.config import RagConfig
from link_weaver.errors import ErrorKind, ProviderError
from link_weaver.rag import CHAT_TIMEOUT, CONVERSATION_TIMEOUT, RagClient, select_sources


class RagClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = mock.MagicMock()
        self.client = RagClient(RagConfig(base_url="https://kb.example/", user_ip="10.0.0.7"), session=self.session)

    def test_two_step_protocol(self) -> None:
        self.session.post.side_effect = [
            FakeResponse(200, {"conversationId": "abc123"}),
            FakeResponse(
                200,
                {"sources": [{"title": "Mesh docs", "url": "https://kb/mesh", "text": "About meshes"}]},
            ),
        ]

        sources = self.client.get_sources("service mesh")

        self.assertEqual([s.to_dict() for s in sources], [
            {"title": "Mesh docs", "url": "https://kb/mesh", "text": "About meshes"},
        ])
        first, second = self.session.post.call_args_list
        self.assertEqual(first.args[0], "https://kb.example/api/conversation/get_id")
        self.assertEqual(first.kwargs["json"], {"conversation_id": None})
        self.assertEqual(first.kwargs["timeout"], CONVERSATION_TIMEOUT)
        self.assertEqual(second.args[0], "https://kb.example/api/chat/abc123")
        self.assertEqual(
            second.kwargs["json"],
            {"user_ip": "10.0.0.7", "message": "service mesh", "user_type": "general"},
        )
        self.assertEqual(second.kwargs["timeout"], CHAT_TIMEOUT)

    def test_conversation_id_is_escaped_in_chat_path(self) -> None:
        self.session.post.side_effect = [
            FakeResponse(200, {"conversationId": "../admin/x y"}),
            FakeResponse(200, {"sources": []}),
        ]

        self.client.get_sources("q")

        second = self.session.post.call_args_list[1]
        self.assertEqual(second.args[0], "https://kb.example/api/chat/..%2Fadmin%2Fx%20y")

    def test_missing_conversation_id_stops_before_chat(self) -> None:
        self.session.post.return_value = FakeResponse(200, {})
        with self.assertRaises(ProviderError) as ctx:
            self.client.get_sources("q")
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_RESPONSE)
        self.assertEqual(self.session.post.call_count, 1)

    def test_missing_sources_is_empty_list(self) -> None:
        self.session.post.side_effect = [
            FakeResponse(200, {"conversationId": 5}),
            FakeResponse(200, {"answer": "no sources here"}),
        ]
        self.assertEqual(self.client.get_sources("q"), [])

    def test_malformed_sources_is_invalid_response(self) -> None:
        self.session.post.side_effect = [
            FakeResponse(200, {"conversationId": 5}),
            FakeResponse(200, {"sources": "oops"}),
        ]
        with self.assertRaises(ProviderError) as ctx:
            self.client.get_sources("q")
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_RESPONSE)

    def test_non_200_on_either_step_is_api_error(self) -> None:
        self.session.post.side_effect = [FakeResponse(503, text="down")]
        with self.assertRaises(ProviderError) as ctx:
            self.client.get_sources("q")
        self.assertEqual(ctx.exception.kind, ErrorKind.API_ERROR)
        self.assertEqual(ctx.exception.status_code, 503)

        self.session.post.side_effect = [FakeResponse(200, {"conversationId": "x"}), FakeResponse(500, text="err")]
        with self.assertRaises(ProviderError) as ctx:
            self.client.get_sources("q")
        self.assertEqual(ctx.exception.status_code, 500)

    def test_unconfigured_url_fails_without_network(self) -> None:
        client = RagClient(RagConfig(base_url="  "), session=self.session)
        with self.assertRaises(ProviderError) as ctx:
            client.get_sources("q")
        self.assertEqual(ctx.exception.kind, ErrorKind.CONFIG_MISSING)
        self.session.post.assert_not_called()

    def test_timeout_is_request_failed(self) -> None:
        self.session.post.side_effect = requests.exceptions.Timeout("slow")
        with self.assertRaises(ProviderError) as ctx:
            self.client.get_sources("q")
        self.assertEqual(ctx.exception.kind, ErrorKind.REQUEST_FAILED)


class SelectSourcesTests(unittest.TestCase):
    def test_dedupes_on_plain_url_and_prefers_deep_link(self) -> None:
        raw = [
            {"title": "A", "url": "https://kb/a", "deep_link_url": "https://kb/a#p3", "text": "first"},
            {"title": "A again", "url": "https://kb/a", "text": "second"},
            {"name": "B", "deep_link_url": "https://kb/b#top"},
        ]

        sources = select_sources(raw)

        self.assertEqual(len(sources), 2)
        self.assertEqual(sources[0].url, "https://kb/a#p3")
        self.assertEqual(sources[0].snippet, "first")
        self.assertEqual(sources[1].title, "B")
        self.assertEqual(sources[1].url, "https://kb/b#top")
        self.assertEqual(sources[1].snippet, "")

    def test_caps_at_five_and_truncates_snippets(self) -> None:
        raw = [{"title": f"S{i}", "url": f"https://kb/{i}", "text": "x" * 500} for i in range(8)]

        sources = select_sources(raw)

        self.assertEqual([s.title for s in sources], ["S0", "S1", "S2", "S3", "S4"])
        self.assertTrue(all(len(s.snippet) == 200 for s in sources))

    def test_skips_entries_without_url_or_not_objects(self) -> None:
        raw = ["nope", {"title": "no url"}, {"title": "ok", "url": "https://kb/ok"}]
        self.assertEqual([s.title for s in select_sources(raw)], ["ok"])


if __name__ == "__main__":
    unittest.main()
