"""Web server entry point for the Tokay client"""

import os

import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env file BEFORE importing anything else
load_dotenv()

from tokay.utils.config import config_manager  # noqa: E402
from web.main import app  # noqa: E402


if __name__ == "__main__":
    settings = config_manager.load_settings()
    host = os.getenv("WEB_HOST", settings.web.host)
    port = int(os.getenv("WEB_PORT", str(settings.web.port)))
    print(f"Starting Tokay client on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")
