"""Root logger setup from the `logging` section of config.yaml (or LOGGING_* env)."""

import logging

from etp_exporter.config import LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """Apply level and format to the root logger.

    Only DEBUG, INFO, WARNING and ERROR are accepted; anything else means INFO.
    An empty format falls back to the LoggingConfig default.
    """
    name = config.level.upper().strip()
    level = getattr(logging, name) if name in ("DEBUG", "INFO", "WARNING", "ERROR") else logging.INFO
    fmt = config.format or LoggingConfig.model_fields["format"].default
    logging.basicConfig(level=level, format=fmt, force=True)
