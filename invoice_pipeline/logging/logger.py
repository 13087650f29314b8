import logging
import sys


class Log:
    """Process-wide logger shared by all three services."""

    _logger: logging.Logger = logging.getLogger("invoice_pipeline")

    @classmethod
    def configure(cls, log_level: str, service_role: str | None = None) -> None:
        """Set the level and attach a stdout handler once.

        The service role, when given, is prefixed to every line so the
        interleaved output of co-located services stays readable.
        """
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            prefix = f"[{service_role}] " if service_role else ""
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter(f"%(asctime)s [%(levelname)s] {prefix}%(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(message, extra=kwargs)
