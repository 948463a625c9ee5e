"""AWS Lambda entry point.

Mangum translates API Gateway HTTP API (v2) events into ASGI, so the
gateway built by create_app() runs unchanged on Lambda. Settings are read
from the function's environment at cold start.
"""

from mangum import Mangum

from src.config.settings import get_settings
from src.logging.audit import setup_logging
from src.main import create_app

settings = get_settings()

# lifespan="off" skips the startup hook, so logging is configured here
setup_logging(settings)

app = create_app(settings)
handler = Mangum(app, lifespan="off")
