import logging
import sys


def setup_logger(name: str = "linkbot", log_level: str = "INFO") -> logging.Logger:
    """
    Console logger shared by every ``linkbot.*`` module.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if not any(getattr(h, "_linkbot_handler", False) for h in logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        console_handler._linkbot_handler = True  # type: ignore[attr-defined]
        logger.addHandler(console_handler)

    return logger
