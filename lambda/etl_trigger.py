"""
AWS Lambda function that triggers one memetrack ingestion run.

Schedule it with EventBridge; the API runs the passes synchronously, so the
schedule interval must be longer than a run to avoid overlapping runs.
"""

import json
import os
import urllib.error
import urllib.request
from typing import Any, Dict

PASSES = ("memecoins", "prices", "market-data")


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Trigger ETL via the memetrack API.

    Environment Variables:
        API_URL: Base URL of the memetrack API (e.g., https://memetrack.example.com)
        ETL_TIMEOUT: Request timeout in seconds (default: 600)

    Event:
        {"pass": "prices"} runs a single pass; an empty event runs all passes.

    EventBridge Rule Example:
        Schedule: cron(0/15 * * * ? *)  # Every 15 minutes
    """
    api_url = os.environ.get("API_URL")
    if not api_url:
        return {"statusCode": 500, "body": json.dumps({"error": "API_URL environment variable not set"})}

    timeout = int(os.environ.get("ETL_TIMEOUT", "600"))

    pass_name = (event or {}).get("pass")
    if pass_name and pass_name not in PASSES:
        return {"statusCode": 400, "body": json.dumps({"error": f"Unknown pass: {pass_name}"})}

    endpoint = f"{api_url.rstrip('/')}/etl/run"
    if pass_name:
        endpoint = f"{endpoint}/{pass_name}"

    request = urllib.request.Request(endpoint, method="POST", headers={"Content-Type": "application/json", "User-Agent": "MemetrackETLTrigger/1.0"})

    try:
        print(f"Triggering ETL at: {endpoint}")

        with urllib.request.urlopen(request, timeout=timeout) as response:
            result = json.loads(response.read().decode("utf-8"))
            print(f"ETL completed: {json.dumps(result, indent=2)}")
            return {"statusCode": 200, "body": json.dumps({"success": True, "etl_result": result})}

    except urllib.error.HTTPError as e:
        error_body = e.read().decode("utf-8") if e.fp else str(e)
        print(f"ETL request failed with HTTP {e.code}: {error_body}")
        return {"statusCode": e.code, "body": json.dumps({"success": False, "error": f"HTTP {e.code}: {error_body}"})}

    except urllib.error.URLError as e:
        print(f"ETL request failed: {e}")
        return {"statusCode": 500, "body": json.dumps({"success": False, "error": f"Connection error: {e}"})}


# For local testing
if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1:
        os.environ["API_URL"] = sys.argv[1]

    result = lambda_handler({"pass": sys.argv[2]} if len(sys.argv) > 2 else {}, None)
    print(json.dumps(result, indent=2))
