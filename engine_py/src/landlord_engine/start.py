#!/usr/bin/env python3
"""Startup script for the Landlord game backend"""

import os
import uvicorn


def main():
    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")

    print(f"🚀 Starting Landlord Game Backend on {host}:{port}")
    print(f"📍 Health check available at: http://{host}:{port}/health")
    print(f"🔌 WebSocket endpoint: ws://{host}:{port}/ws/<room address>/<player id>")

    uvicorn.run(
        "landlord_engine.main:app",
        host=host,
        port=port,
        reload=os.getenv("RELOAD", "false").lower() == "true",
        log_level=os.getenv("LOG_LEVEL", "info").lower()
    )


if __name__ == "__main__":
    main()
