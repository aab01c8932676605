#!/usr/bin/env python3
"""
Seed script: subscribe demo boards to Google task lists and run a first sync.

Expects a running server (uvicorn src.main:app) with boards created by
`python init_db.py --seed`, and a Google OAuth access token with the
https://www.googleapis.com/auth/tasks scope:

    GOOGLE_ACCESS_TOKEN=ya29... python scripts/seed_data.py
"""

import os
import sys

import requests

API_URL = "http://localhost:8000/api/v1"
API_KEY = "dev-api-key-change-in-production"
PRINCIPAL_ID = "demo-user"

# Board id → Google task list title
SUBSCRIPTIONS = {
    1: "My Tasks",
    2: "Work",
}


def build_headers(token):
    return {
        "X-API-Key": API_KEY,
        "X-Principal-Id": PRINCIPAL_ID,
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


def get_task_lists(headers):
    """Fetch the Google task lists via API."""
    response = requests.get(f"{API_URL}/google/task-lists", headers=headers)
    response.raise_for_status()
    return {task_list["title"]: task_list["id"] for task_list in response.json()}


def subscribe(headers, board_id, task_list_id, task_list_title):
    """Subscribe a board to a task list via API."""
    response = requests.post(
        f"{API_URL}/google/mappings",
        headers=headers,
        json={
            "board_id": board_id,
            "remote_list_id": task_list_id,
            "remote_list_title": task_list_title,
        },
    )
    if response.status_code == 201:
        return response.json()
    else:
        print(f"Error subscribing board {board_id}: {response.text}")
        return None


def main():
    token = os.environ.get("GOOGLE_ACCESS_TOKEN")
    if not token:
        print("Set GOOGLE_ACCESS_TOKEN to a Google OAuth access token")
        sys.exit(1)

    headers = build_headers(token)

    print("=" * 60)
    print("Subscribing demo boards to Google task lists")
    print("=" * 60)

    task_lists = get_task_lists(headers)
    print(f"\n📋 Found {len(task_lists)} task lists: {', '.join(task_lists)}")

    print("\n🔗 Creating subscriptions...")
    for board_id, title in SUBSCRIPTIONS.items():
        if title not in task_lists:
            print(f"  ⚠️ Task list '{title}' not found, skipping board {board_id}")
            continue
        if subscribe(headers, board_id, task_lists[title], title):
            print(f"  ✅ Board {board_id} → {title}")

    print("\n🔄 Running first sync...")
    response = requests.post(f"{API_URL}/google/sync", headers=headers)
    response.raise_for_status()
    for result in response.json()["results"]:
        print(
            f"  Board {result['board_id']}: "
            f"+{result['cards_created']} cards, +{result['tasks_created']} tasks, "
            f"{len(result['errors'])} errors"
        )

    print("\n" + "=" * 60)
    print("✅ Done!")
    print("=" * 60)


if __name__ == "__main__":
    main()
