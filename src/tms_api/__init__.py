"""tms_api."""

from .monitoring.logger import configure_logger

# Console logging with defaults; create_app() reconfigures with the level from settings
configure_logger()
