import os
import json
import uuid
import time
import random

import requests

# --- Configuration ---
# Point these at a running server and at products seeded by gen_dataset.py.
BASE_URL = os.environ.get("STOREHUB_BASE_URL", "http://127.0.0.1:8000")
CHECKOUT_ENDPOINT = f"{BASE_URL}/api/v1/storefront/orders"
TRACK_ENDPOINT = f"{BASE_URL}/api/v1/orders/track"

# Comma-separated product ids from a single store.
PRODUCT_IDS = [p for p in os.environ.get("STOREHUB_PRODUCT_IDS", "").split(",") if p]
# Optional: a product id from a different store, to exercise the cross-store rejection.
FOREIGN_PRODUCT_ID = os.environ.get("STOREHUB_FOREIGN_PRODUCT_ID")


def create_checkout_payload(product_ids, quantity=None):
    return {
        "customerName": "Smoke Test Customer",
        "phone": "01700000000",
        "email": "smoke@example.com",
        "city": "Dhaka",
        "deliveryCents": 6000,
        "items": [
            {"productId": pid, "quantity": quantity or random.randint(1, 3)}
            for pid in product_ids
        ],
    }


def post_checkout(payload, key=None):
    """Executes the POST request and prints the result."""
    headers = {'Content-Type': 'application/json'}
    if key:
        headers['Idempotency-Key'] = key

    start = time.time()
    response = requests.post(CHECKOUT_ENDPOINT, headers=headers, data=json.dumps(payload), timeout=10)
    duration = time.time() - start

    print(f"Status Code: {response.status_code} ({duration:.2f}s)")
    try:
        body = response.json()
        print(json.dumps(body, indent=2))
    except json.JSONDecodeError:
        body = None
        print(f"Raw Response: {response.text[:200]}...")
    return response.status_code, body


def main():
    if not PRODUCT_IDS:
        print("Set STOREHUB_PRODUCT_IDS to one or more product ids from a single store.")
        return

    try:
        key = str(uuid.uuid4())
        payload = create_checkout_payload(PRODUCT_IDS, quantity=2)

        print("--- 1: Storefront checkout ---")
        status_code, first = post_checkout(payload, key)

        print("\n--- 2: Replay with the same Idempotency-Key (expect identical body) ---")
        _, replay = post_checkout(payload, key)
        if first and replay and first.get("orderNumber") != replay.get("orderNumber"):
            print("WARNING: replay produced a different order")

        print("\n--- 3: Same key, different payload (expect 409) ---")
        post_checkout(create_checkout_payload(PRODUCT_IDS, quantity=5), key)

        if FOREIGN_PRODUCT_ID:
            print("\n--- 4: Products from two stores (expect 400) ---")
            post_checkout(create_checkout_payload(PRODUCT_IDS[:1] + [FOREIGN_PRODUCT_ID]))

        if status_code == 201 and first:
            print("\n--- 5: Public tracking ---")
            response = requests.get(f"{TRACK_ENDPOINT}/{first['orderNumber']}", timeout=10)
            print(f"Status Code: {response.status_code}")
            print(json.dumps(response.json(), indent=2))

    except requests.exceptions.ConnectionError:
        print(f"ERROR: Could not connect to {BASE_URL}. Is your Django server running?")


if __name__ == "__main__":
    main()
