"""Liveness endpoint."""

import time


async def health() -> dict:
    """GET /health - report that the bridge is up."""
    return {"ok": True, "time": int(time.time())}
