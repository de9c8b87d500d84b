#!/usr/bin/env python3
"""
Development server for the Alleyway API.

ALLEYWAY_HOST, ALLEYWAY_PORT and ALLEYWAY_RELOAD override the defaults.
"""

import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    uvicorn.run(
        "alleyway.api:app",
        host=os.getenv("ALLEYWAY_HOST", "0.0.0.0"),
        port=int(os.getenv("ALLEYWAY_PORT", "8000")),
        reload=os.getenv("ALLEYWAY_RELOAD", "true").lower() in ("1", "true", "yes"),
        log_level="info",
    )
