import asyncio
import unittest
from unittest import mock

import requests

from drawbot.client import DrawPoolClient
from drawbot.config import BotSettings


def _response(payload, status_code=200):
    resp = mock.Mock(spec=requests.Response)
    resp.status_code = status_code
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


class DrawPoolClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = BotSettings(base_url="http://draws.test", timeout_seconds=3, admin_token="secret")
        self.session = mock.Mock(spec=requests.Session)
        self.client = DrawPoolClient(self.settings, session=self.session)

    def test_get_used_numbers(self) -> None:
        self.session.get.return_value = _response({"usedNumbers": [3, 1]})

        numbers = asyncio.run(self.client.get_used_numbers())

        self.assertEqual(numbers, [3, 1])
        self.session.get.assert_called_once_with("http://draws.test/api/used-numbers", timeout=3)

    def test_get_draw_records(self) -> None:
        records = {"topicDrawers": {"2": ["user_0"]}, "topicNumbers": {"2": {"user_0": 5}}}
        self.session.get.return_value = _response(records)

        self.assertEqual(asyncio.run(self.client.get_draw_records()), records)
        self.session.get.assert_called_once_with("http://draws.test/api/draw-records", timeout=3)

    def test_claim_number_sends_camel_case_body(self) -> None:
        self.session.post.return_value = _response({"success": True, "message": "claimed", "number": 5})

        reply = asyncio.run(self.client.claim_number(5, topic_id=2, user_name="user_0"))

        self.assertTrue(reply.success)
        self.assertEqual(reply.number, 5)
        self.session.post.assert_called_once_with(
            "http://draws.test/api/claim-number",
            json={"number": 5, "topicId": 2, "userName": "user_0"},
            headers=None,
            timeout=3,
        )

    def test_claim_number_surfaces_rejections(self) -> None:
        self.session.post.return_value = _response({"success": False, "message": "already claimed"})

        reply = asyncio.run(self.client.claim_number(5))

        self.assertFalse(reply.success)
        self.assertEqual(reply.message, "already claimed")
        self.assertIsNone(reply.number)

    def test_reset_sends_admin_token(self) -> None:
        self.session.post.return_value = _response({"success": True, "message": "reset complete"})

        self.assertTrue(asyncio.run(self.client.reset()))
        self.session.post.assert_called_once_with(
            "http://draws.test/api/reset",
            json={"isAdmin": True},
            headers={"X-Admin-Token": "secret"},
            timeout=3,
        )

    def test_reset_raises_on_forbidden(self) -> None:
        self.session.post.return_value = _response({"success": False, "message": "nope"}, status_code=403)

        with self.assertRaises(requests.HTTPError):
            asyncio.run(self.client.reset())


if __name__ == "__main__":
    unittest.main()
