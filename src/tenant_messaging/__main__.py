"""Entrypoint: python -m tenant_messaging"""
from __future__ import annotations

import uvicorn

from tenant_messaging.config import settings
from tenant_messaging.logging_config import configure_logging


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "tenant_messaging.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
        log_config=None,
    )


if __name__ == "__main__":
    main()
