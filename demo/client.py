"""
Interactive terminal client: opens a robot check over the WebSocket and
relays answers typed by the user. Prints VERIFIED once the flag is committed.
"""
import asyncio
import json
import os
import sys

import websockets

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from dotenv import load_dotenv
load_dotenv()

WS_URL = os.getenv("WS_URL", "ws://localhost:8000/ws/challenge")
USER_ID = os.getenv("USER_ID", "demo-user-001")
VARIANT = os.getenv("VARIANT", "text_captcha")


def describe(msg: dict) -> str:
    variant = msg.get("variant")
    if variant == "question_sequence":
        return f"Question {msg['step'] + 1}/{msg['total_steps']}: {msg['prompt']}"
    if variant == "text_captcha":
        return f"Type the code: {' '.join(msg['display_text'])}"
    if variant == "slider_puzzle":
        return f"Slide to {msg['target_offset']} (±{msg['tolerance']}) on a 0-100 track"
    return json.dumps(msg)


async def run():
    uri = f"{WS_URL}?user_id={USER_ID}&variant={VARIANT}"
    print(f"[client] Connecting to {uri}")

    async with websockets.connect(uri) as ws:
        while True:
            msg = json.loads(await ws.recv())
            msg_type = msg.get("type")

            if msg_type == "challenge":
                print(f"[client] {describe(msg)}")
                answer = await asyncio.to_thread(input, "> ")
                await ws.send(json.dumps({"answer": answer}))

            elif msg_type == "cooldown":
                print(f"\r[client] Try again in {msg['remaining_s']:>2}s", end="", flush=True)
                if msg["remaining_s"] == 0:
                    print()

            elif msg_type == "result":
                condition = msg.get("condition")
                if condition == "SUCCEEDED":
                    print("\n[client] VERIFIED ✓")
                    break
                if condition == "PERSISTENCE_FAILED":
                    print(f"[client] Could not save result ({msg.get('reason')}), retrying")
                    await asyncio.sleep(2.0)
                    await ws.send(json.dumps({"action": "commit"}))
                elif condition != "STEP_PASSED":
                    print(f"[client] {condition} {msg.get('reason', '')}".rstrip())

            elif msg_type in ("error", "session_expired"):
                print(f"[client] {msg_type}: {msg.get('message', '')}")
                break


if __name__ == "__main__":
    asyncio.run(run())
