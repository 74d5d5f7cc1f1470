from __future__ import annotations

from koth_poller.types import EndpointResult


def _data(result: EndpointResult) -> dict:
    """The `data` object of an agent envelope, or {} for anything else."""
    body = result.body if isinstance(result.body, dict) else {}
    data = body.get("data")
    return data if isinstance(data, dict) else {}


def summarize(health: EndpointResult, status: EndpointResult) -> tuple[dict, int]:
    """Compute summary dict and an exit code from the two poll results."""
    owner = _data(status).get("identifier") if status.ok else None

    health_data = _data(health)
    summary = {
        "component": "poller",
        "event": "summary",
        "owner": owner,
        "healthy": health.ok,
        "health": {
            "http_status": health.http_status,
            "exit_status": health_data.get("status"),
            "stderr": health_data.get("stderr"),
        },
        "status": {"http_status": status.http_status},
    }
    exit_code = 0 if (health.ok and status.ok) else 1
    return summary, exit_code
