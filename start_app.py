#!/usr/bin/env python
"""Start the order core API with port configuration from the environment."""
import os
import uvicorn

from marketplace.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    port = int(os.environ.get("PORT", 8000))

    print(f"Starting Marketplace Order Core ({settings.ENVIRONMENT}) on port {port}")

    uvicorn.run(
        "marketplace.main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
