"""
ASGI entry point for Uvicorn.

    uvicorn wsgi:app --port 3000
"""

import sys
from typing import Any
from dotenv import load_dotenv
from wcproxy.config import Settings, ConfigurationError
from wcproxy.interfaces.http.app import create_app

# Load environment variables
load_dotenv()


def create_application() -> Any:
    """Application factory for Uvicorn."""
    try:
        settings = Settings()
    except ConfigurationError as e:
        print(f"\nConfiguration Error:\n{e}", file=sys.stderr)
        raise SystemExit(1)
    try:
        return create_app(settings)
    except Exception as e:
        print(f"\nFailed to initialize application: {str(e)}", file=sys.stderr)
        raise SystemExit(1)


app = create_application()
