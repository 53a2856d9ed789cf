#!/usr/bin/env python3
"""
Development server launcher for the LinguaCraft API.

For production, run the app factory under a proper ASGI server deployment.
"""

import logging
import os

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "3001"))
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print("Starting LinguaCraft API Development Server")
    print(f"Server will be available at: http://localhost:{port}")
    print(f"API documentation at: http://localhost:{port}/docs")
    print("\n" + "="*50 + "\n")

    uvicorn.run(
        "linguacraft.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=port,
        reload=True,     # Auto-reload on code changes (development only)
        log_level="info"
    )
