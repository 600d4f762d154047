import logging

logger = logging.getLogger("cinechronic")


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach the console handler once; module loggers propagate here."""
    logger.setLevel(level)
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        formatter = logging.Formatter("[%(levelname)s] %(asctime)s - %(name)s - %(message)s", "%Y-%m-%d %H:%M:%S")
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
    return logger
