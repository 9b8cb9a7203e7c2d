#!/usr/bin/env python3
from __future__ import annotations

import json
import os
import sys
import time

from urllib.request import Request, urlopen
from urllib.error import URLError


def main() -> int:
    base_url = os.getenv("GALAXYGPT_API_URL", "http://localhost:3636").rstrip("/")
    try:
        with urlopen(f"{base_url}/healthz", timeout=5) as r:
            print("/healthz:", r.read().decode("utf-8"))
        # Give the index a moment to come up
        time.sleep(0.5)
        with urlopen(f"{base_url}/healthz/ready", timeout=5) as r2:
            print("/healthz/ready:", r2.read().decode("utf-8"))
        body = json.dumps({"prompt": "What is the deity?", "max_length": 32}).encode("utf-8")
        ask = Request(f"{base_url}/api/v1/ask", data=body, headers={"Content-Type": "application/json"})
        with urlopen(ask, timeout=60) as r3:
            print("/api/v1/ask:", r3.read().decode("utf-8"))
    except (URLError, Exception) as exc:
        print(f"Compose smoke failed: {exc}", file=sys.stderr)
        return 1
    print("Compose smoke passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
