import logging
from typing import Any, Dict, Optional

PACKAGE_LOGGER_PREFIX = "pagedistill."


def log_context(pass_id: Optional[str] = None, frame_index: Optional[int] = None) -> Dict[str, Any]:
    """``extra`` mapping that tags a record with its distillation pass and frame."""
    extra: Dict[str, Any] = {}
    if pass_id is not None:
        extra["pass_id"] = pass_id
    if frame_index is not None:
        extra["frame_index"] = frame_index
    return extra


# --- Custom Logging Filter ---
# Fills the pass and frame fields used by the formatter below, so records
# emitted outside a pass (including third-party loggers) still format.
class DistillLogFilter(logging.Filter):
    """
    Adds ``pass_id`` and ``frame`` to every record and shortens package
    logger names (``pagedistill.environment.distiller`` becomes
    ``environment.distiller``).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        pass_id = getattr(record, "pass_id", None)
        record.pass_id = "-" if pass_id is None else str(pass_id)

        frame_index = getattr(record, "frame_index", None)
        record.frame = "-" if frame_index is None else f"#{frame_index}"

        if record.name.startswith(PACKAGE_LOGGER_PREFIX):
            record.name = record.name[len(PACKAGE_LOGGER_PREFIX):]

        return True


# --- Logging Setup Utility ---
def init_logging(
    level: int = logging.INFO, clear_existing_handlers: bool = True
) -> None:
    """
    Sets up console logging with pass and frame context on every line.

    Args:
        level: The desired logging level for the root logger (e.g., logging.INFO, logging.DEBUG).
        clear_existing_handlers: If True, removes any handlers already attached to the
                                 root logger, preventing duplicate output when called twice.
    """
    root_logger = logging.getLogger()

    if clear_existing_handlers:
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(name)s] [pass:%(pass_id)s frame:%(frame)s] %(message)s"
    )
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(DistillLogFilter())

    root_logger.addHandler(stream_handler)
    root_logger.setLevel(level)

    logging.getLogger(__name__).info(
        f"Logging setup complete. Root logger level set to {logging.getLevelName(level)}."
    )
