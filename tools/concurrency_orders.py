"""
Fire concurrent direct orders at a running server to observe how the last
units of a listing are shared out (and how many buyers are turned away).

    python tools/concurrency_orders.py --product demo-dress --workers 8
"""
import argparse
import concurrent.futures
import os
from collections import Counter

import requests

BASE = os.environ.get("MARKETPLACE_BASE", "http://127.0.0.1:8000")


def order_task(i, product_id, qty):
    headers = {"Content-Type": "application/json", "X-User-Id": f"load-buyer-{i}"}
    payload = {"product_id": product_id, "quantity": qty}
    try:
        r = requests.post(f"{BASE}/api/orders", json=payload, headers=headers, timeout=20)
        return (i, r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "ERR", str(e))


def run(workers, product_id, qty):
    print(f"Running order test: workers={workers}, product={product_id}, qty={qty}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(order_task, i, product_id, qty) for i in range(workers)]
        results = [f.result() for f in futures]
    for r in results:
        print(r)
    print("Status codes:", dict(Counter(r[1] for r in results)))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent direct-order tool.")
    parser.add_argument("--product", default="demo-dress")
    parser.add_argument("--qty", type=int, default=1)
    parser.add_argument("--workers", type=int, default=8)
    args = parser.parse_args()
    run(args.workers, args.product, args.qty)
