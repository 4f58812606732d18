"""Serve the laundry management API with uvicorn."""

from __future__ import annotations

import uvicorn

from .config import configure_logging, load_settings
from .web.app import create_app


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
