"""Application entry point for the Lumen Extract API server."""

import uvicorn

from lumen_extract.api.app import app
from lumen_extract.utils.config import load_config
from lumen_extract.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
