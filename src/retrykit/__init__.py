"""
retrykit - composable retry execution.

Runs a fallible operation repeatedly, asking a Stopper after every failure
whether to give up and a Delayer how long to wait before the next attempt.

Architecture: pure policy objects (delay + stop) driven by a small sequential
executor, with structlog logging, Prometheus metrics and an httpx collaborator.

At process start, apply the logging settings once:

    from retrykit.config import Settings
    from retrykit.logging_config import configure_logging_from_settings

    configure_logging_from_settings(Settings())
"""

__version__ = "0.1.0"
