"""HTTP and WebSocket tests through FastAPI's TestClient."""
import os
import sys
import unittest
import uuid
from unittest import mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ.setdefault("DATABASE_URL", ":memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-that-is-long-enough-32ch")
os.environ.setdefault("COUNTDOWN_TICK_S", "0")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "1000")

from fastapi.testclient import TestClient

from lovebug.main import app


class TestHttpApi(unittest.TestCase):
    def setUp(self):
        self._ctx = TestClient(app)
        self.client = self._ctx.__enter__()
        self.user_id = f"user-{uuid.uuid4().hex[:8]}"
        resp = self.client.post("/auth/session", json={"user_id": self.user_id})
        self.assertEqual(resp.status_code, 200)
        self.headers = {"Authorization": f"Bearer {resp.json()['token']}"}

    def tearDown(self):
        self._ctx.__exit__(None, None, None)

    def _open(self, variant: str) -> dict:
        resp = self.client.post("/challenges", json={"variant": variant}, headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def _answer(self, session_id: str, answer) -> dict:
        resp = self.client.post(
            f"/challenges/{session_id}/answer", json={"answer": answer}, headers=self.headers
        )
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def test_status(self):
        resp = self.client.get("/status")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "ok")

    def test_requires_bearer_token(self):
        self.assertEqual(self.client.get("/me/verification").status_code, 401)
        resp = self.client.get("/me/verification", headers={"Authorization": "Bearer junk"})
        self.assertEqual(resp.status_code, 401)

    def test_captcha_flow_sets_verified_flag(self):
        before = self.client.get("/me/verification", headers=self.headers).json()
        self.assertFalse(before["is_verified"])

        view = self._open("text_captcha")
        self.assertEqual(len(view["display_text"]), 5)
        body = self._answer(view["session_id"], view["display_text"].lower())
        self.assertEqual(body["result"]["condition"], "SUCCEEDED")
        self.assertEqual(body["challenge"]["status"], "succeeded")

        after = self.client.get("/me/verification", headers=self.headers).json()
        self.assertTrue(after["is_verified"])

        again = self.client.post("/challenges", json={"variant": "text_captcha"}, headers=self.headers)
        self.assertEqual(again.status_code, 409)
        gone = self.client.get(f"/challenges/{view['session_id']}", headers=self.headers)
        self.assertEqual(gone.status_code, 404)

    def test_wrong_answer_starts_cooldown(self):
        view = self._open("text_captcha")
        wrong = self._answer(view["session_id"], "nope!")
        self.assertEqual(wrong["result"]["condition"], "WRONG_ANSWER")
        self.assertEqual(wrong["result"]["remaining_seconds"], 60)
        new_code = wrong["challenge"]["display_text"]
        self.assertNotEqual(new_code, view["display_text"])

        blocked = self._answer(view["session_id"], new_code)
        self.assertEqual(blocked["result"]["condition"], "COOLDOWN_ACTIVE")
        self.assertGreater(blocked["result"]["remaining_seconds"], 0)

        # Cooldown is per user, so a new challenge inherits it
        other = self._open("slider_puzzle")
        self.assertGreater(other["cooldown_remaining_s"], 0)

        stats = self.client.get("/me/attempts/stats", headers=self.headers).json()["stats"]
        self.assertEqual(stats["failure_count"], 1)
        self.assertEqual(stats["rejected_count"], 1)

    def test_question_view_does_not_leak_answers(self):
        view = self._open("question_sequence")
        self.assertIn("prompt", view)
        self.assertEqual(view["total_steps"], 3)
        self.assertNotIn("answers", view)
        self.assertNotIn("steps", view)

    def test_foreign_challenge_not_found(self):
        view = self._open("slider_puzzle")
        other = self.client.post("/auth/session", json={}).json()
        resp = self.client.get(
            f"/challenges/{view['session_id']}",
            headers={"Authorization": f"Bearer {other['token']}"},
        )
        self.assertEqual(resp.status_code, 404)

    def test_commit_without_pending_result(self):
        view = self._open("slider_puzzle")
        resp = self.client.post(f"/challenges/{view['session_id']}/commit", headers=self.headers)
        self.assertEqual(resp.json()["result"]["condition"], "INVALID_STATE")

    def test_unknown_variant_rejected(self):
        resp = self.client.post("/challenges", json={"variant": "riddle"}, headers=self.headers)
        self.assertEqual(resp.status_code, 422)

    def test_entropy_failure_returns_503(self):
        from lovebug.protocol.registry import registry
        from lovebug.services import challenge_gen

        before = len(registry)
        with mock.patch.object(challenge_gen._rng, "randint", side_effect=NotImplementedError("no urandom")):
            resp = self.client.post("/challenges", json={"variant": "slider_puzzle"}, headers=self.headers)
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["detail"], "no entropy source available")
        self.assertEqual(len(registry), before)


class TestRateLimiter(unittest.TestCase):
    def _limiter(self):
        from collections import defaultdict, deque
        from lovebug.middleware.rate_limit import RateLimitMiddleware

        mw = RateLimitMiddleware.__new__(RateLimitMiddleware)
        mw._windows = defaultdict(deque)
        mw._last_sweep = 0.0
        return mw

    def test_blocks_over_limit_then_recovers(self):
        from lovebug.config import settings

        mw = self._limiter()
        now = 1000.0
        for _ in range(settings.rate_limit_requests):
            self.assertIsNone(mw.check("ip:9.9.9.9", now))
        retry_after = mw.check("ip:9.9.9.9", now + 1)
        self.assertIsNotNone(retry_after)
        self.assertAlmostEqual(retry_after, settings.rate_limit_window_s - 1)
        self.assertIsNone(mw.check("ip:1.2.3.4", now + 1))
        self.assertIsNone(mw.check("ip:9.9.9.9", now + settings.rate_limit_window_s + 1))

    def test_bearer_token_not_kept_in_keys(self):
        from starlette.requests import Request

        mw = self._limiter()
        request = Request({
            "type": "http",
            "headers": [(b"authorization", b"Bearer secret-session-token")],
            "client": ("1.2.3.4", 5555),
        })
        key = mw._client_key(request)
        self.assertTrue(key.startswith("auth:"))
        self.assertNotIn("secret-session-token", key)
        self.assertEqual(key, mw._client_key(request))

    def test_idle_clients_swept(self):
        from lovebug.config import settings

        mw = self._limiter()
        window = settings.rate_limit_window_s
        for i in range(500):
            mw.check(f"ip:10.0.{i // 256}.{i % 256}", 1000.0)
        self.assertEqual(len(mw._windows), 500)

        mw.check("ip:192.168.0.1", 1000.0 + window + 1)
        self.assertEqual(list(mw._windows), ["ip:192.168.0.1"])


class TestWebSocket(unittest.TestCase):
    def test_slider_over_websocket(self):
        user_id = f"ws-{uuid.uuid4().hex[:8]}"
        with TestClient(app) as client:
            with client.websocket_connect(f"/ws/challenge?user_id={user_id}&variant=slider_puzzle") as ws:
                challenge = ws.receive_json()
                self.assertEqual(challenge["type"], "challenge")
                ws.send_json({"answer": challenge["target_offset"] + 2})
                result = ws.receive_json()
            self.assertEqual(result["type"], "result")
            self.assertEqual(result["condition"], "SUCCEEDED")

            token = client.post("/auth/session", json={"user_id": user_id}).json()["token"]
            status = client.get("/me/verification", headers={"Authorization": f"Bearer {token}"})
            self.assertTrue(status.json()["is_verified"])

    def test_unauthenticated_websocket(self):
        with TestClient(app) as client:
            with client.websocket_connect("/ws/challenge") as ws:
                msg = ws.receive_json()
        self.assertEqual(msg["type"], "error")

    def test_entropy_failure_sends_error(self):
        from lovebug.protocol.registry import registry
        from lovebug.services import challenge_gen

        user_id = f"ws-{uuid.uuid4().hex[:8]}"
        with TestClient(app) as client:
            before = len(registry)
            with mock.patch.object(challenge_gen._rng, "randint", side_effect=NotImplementedError("no urandom")):
                with client.websocket_connect(f"/ws/challenge?user_id={user_id}&variant=slider_puzzle") as ws:
                    msg = ws.receive_json()
            self.assertEqual(len(registry), before)
        self.assertEqual(msg, {"type": "error", "message": "no entropy source available"})

    def test_malformed_frames_do_not_end_session(self):
        user_id = f"ws-{uuid.uuid4().hex[:8]}"
        with TestClient(app) as client:
            with client.websocket_connect(f"/ws/challenge?user_id={user_id}&variant=slider_puzzle") as ws:
                challenge = ws.receive_json()
                for frame in ('"hello"', "[1]", "not json at all"):
                    ws.send_text(frame)
                    result = ws.receive_json()
                    self.assertEqual(result["type"], "result")
                    self.assertEqual(result["condition"], "INVALID_INPUT")
                    self.assertEqual(ws.receive_json()["type"], "challenge")
                ws.send_json({"answer": challenge["target_offset"]})
                final = ws.receive_json()
        self.assertEqual(final["condition"], "SUCCEEDED")


if __name__ == "__main__":
    unittest.main(verbosity=2)
