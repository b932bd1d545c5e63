#!/usr/bin/env python3
import requests
import sys
import os

# Define the URL to check - uses environment variable PORT or defaults to 8000
port = os.environ.get("PORT", 8000)
url = f"http://localhost:{port}/health"

try:
    response = requests.get(url, timeout=5)

    # 503 means the API is up but the database is not
    if response.status_code == 200:
        print(f"Health check passed: {response.json()}")
        sys.exit(0)
    else:
        print(f"Health check failed: HTTP {response.status_code} {response.text}")
        sys.exit(1)
except requests.RequestException as e:
    print(f"Health check failed: {str(e)}")
    sys.exit(1)
