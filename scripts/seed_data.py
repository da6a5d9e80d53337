#!/usr/bin/env python3
"""
Seed script — creates a realistic dataset for trying out both feeds.

Creates:
  • 10 users
  • A follow graph (each user follows 4 others)
  • 5 ticker-bearing posts per user (50 total), a few of them replies
  • Random LIKE / BOOST / BOOKMARK reactions across posts

Run after the API is up:
  python scripts/seed_data.py --api-url http://localhost:8000

All IDs are printed so you can use them in curl commands.
"""
import argparse
import json
import random
import time
import urllib.request
import urllib.error
from dataclasses import dataclass


BASE_USERS = [
    ("alice_alpha", "Alice Chen"),
    ("bob_bagholder", "Bob Martinez"),
    ("carol_candles", "Carol Singh"),
    ("dave_dividends", "Dave Kim"),
    ("eve_etf", "Eve Johnson"),
    ("frank_futures", "Frank Williams"),
    ("grace_gamma", "Grace Li"),
    ("henry_hodl", "Henry Brown"),
    ("iris_options", "Iris Davis"),
    ("jack_quant", "Jack Wilson"),
]

SAMPLE_POSTS = [
    "$TSLA deliveries beat again. Margins are the real story though.",
    "Loading up on $NVDA before earnings, data center demand is insane.",
    "BTC reclaiming the range high. ETH lagging as usual.",
    "$AAPL buybacks keep the floor in. Boring but it works.",
    "Rotating out of $AMD into $MSFT for the quarter.",
    "SOL and DOGE ripping on the weekend, classic.",
    "Samsung 005930.KS looking cheap vs memory peers.",
    "$SPY closed green for the 7th day. Breadth is still weak.",
    "Anyone else trimming $META here? Great run, stretched valuation.",
    "$COIN trades like leveraged BTC at this point.",
    "$GOOGL search share worries are overdone IMO.",
    "Watching $PLTR for a pullback entry.",
    "ETH staking yields vs T-bills, not even close right now.",
    "$AMZN AWS reacceleration is the whole thesis.",
    "Kakao 035720.KQ volume spike this morning, any news?",
    "$TSLA robotaxi day is going to be a sell-the-news event.",
    "XRP court headlines moving the whole alt market again.",
    "$NVDA and $AMD both down on export rules chatter.",
    "Long $JPM into the rate cut cycle, NIM holding up.",
    "BTC dominance climbing, alts bleeding. Patience.",
]

REACTION_TYPES = ["LIKE", "BOOST", "BOOKMARK"]


@dataclass
class ApiClient:
    base_url: str

    def post(self, path: str, data: dict) -> dict:
        url = f"{self.base_url}{path}"
        body = json.dumps(data).encode()
        req = urllib.request.Request(
            url, data=body, headers={"Content-Type": "application/json"}, method="POST"
        )
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                raw = resp.read()
                return json.loads(raw) if raw else {}
        except urllib.error.HTTPError as e:
            body = e.read().decode()
            print(f"  HTTP {e.code} on POST {path}: {body}")
            return {}

    def get(self, path: str) -> dict:
        url = f"{self.base_url}{path}"
        req = urllib.request.Request(url, method="GET")
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on GET {path}")
            return {}


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for i in range(retries):
        try:
            result = client.get("/health")
            if result.get("status") == "ok":
                print("  API is ready!\n")
                return
        except (urllib.error.URLError, ConnectionError):
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Create users ─────────────────────────────────────────────────────
    print("Creating users...")
    user_ids: list[int] = []
    for handle, display_name in BASE_USERS:
        result = client.post("/users/", {"handle": handle, "display_name": display_name})
        uid = result.get("id")
        if uid:
            user_ids.append(uid)
            print(f"  ✓ {handle} ({uid})")
        else:
            print(f"  ✗ Failed to create {handle}")

    if not user_ids:
        print("No users created — aborting")
        return

    # ── Create follow graph ───────────────────────────────────────────────
    print("\nCreating follow relationships...")
    for follower_id in user_ids:
        followees = random.sample([u for u in user_ids if u != follower_id], k=min(4, len(user_ids) - 1))
        for followee_id in followees:
            client.post("/users/follow", {"follower_id": follower_id, "followee_id": followee_id})
    print("  ✓ Follow graph created")

    # ── Create posts ──────────────────────────────────────────────────────
    print("\nCreating posts...")
    post_ids: list[int] = []
    post_pool = SAMPLE_POSTS * 3
    random.shuffle(post_pool)
    idx = 0
    for user_id in user_ids:
        for _ in range(5):
            body = {"user_id": user_id, "text": post_pool[idx % len(post_pool)]}
            idx += 1
            # Every 7th post replies to an earlier one; replies stay out of for_you
            if post_ids and idx % 7 == 0:
                body["reply_to_id"] = random.choice(post_ids)
            result = client.post("/posts/", body)
            pid = result.get("id")
            if pid:
                post_ids.append(pid)
    print(f"  ✓ {len(post_ids)} posts created")

    # ── Create some reactions ─────────────────────────────────────────────
    print("\nAdding reactions...")
    reactions = 0
    for post_id in post_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, 5)):
            client.post(
                f"/posts/{post_id}/react",
                {"user_id": user_id, "type": random.choice(REACTION_TYPES)},
            )
            reactions += 1
    print(f"  ✓ {reactions} reactions toggled")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    print(f"# For You feed for '{BASE_USERS[0][0]}':")
    print(f"  curl -s '{api_url}/feed/?user_id={u}&mode=for_you&limit=10' | python3 -m json.tool\n")
    print("# Following feed:")
    print(f"  curl -s '{api_url}/feed/?user_id={u}&mode=following' | python3 -m json.tool\n")
    print("# Why is the feed ordered this way?")
    print(f"  curl -s '{api_url}/feed/debug?user_id={u}' | python3 -m json.tool\n")
    print("# Post something:")
    print(f"  curl -s -X POST '{api_url}/posts/' \\")
    print("    -H 'Content-Type: application/json' \\")
    print(f"    -d '{{\"user_id\": {u}, \"text\": \"Adding $TSLA on the dip\"}}' | python3 -m json.tool\n")
    print("# Check Jaeger traces: http://localhost:16686")
    print("# Check Prometheus: http://localhost:9090")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Ticker Feed API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
