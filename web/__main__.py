"""
Web 진입점

실행 방법:
    python -m web
"""

import uvicorn

from core.config.loader import load_settings
from core.logging import setup_logging
from web.app import create_app

if __name__ == "__main__":
    settings = load_settings()
    setup_logging("web", settings.log_level)

    uvicorn.run(
        create_app(settings),
        host=settings.web_host,
        port=settings.web_port,
        reload=False,
        log_config=None,
    )
