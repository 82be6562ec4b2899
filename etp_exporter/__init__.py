"""ETP issues exporter: mirror GitHub issues locally and convert them into reports."""

__version__ = "0.1.0"
