"""
Visualization API — Application Runner.

Usage:
    python run.py            → API server on API_HOST:API_PORT
    python run.py --version  → print version and exit
"""

import sys

import uvicorn

from visualization_api.core.config import get_settings
from visualization_api.main import APP_VERSION


def run_api() -> None:
    """Start the FastAPI server."""
    settings = get_settings()
    print(f"🚀 {settings.APP_NAME} → http://{settings.API_HOST}:{settings.API_PORT}")
    uvicorn.run(
        "visualization_api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    if "--version" in sys.argv[1:]:
        print(f"visualization-api version {APP_VERSION}")
        sys.exit(0)
    run_api()
