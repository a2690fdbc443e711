"""wfp_action."""

from .monitoring.logger import configure_logger

# Configure logger with default settings (just console logging)
# The CLI reconfigures the level from Settings.log_level
configure_logger()
