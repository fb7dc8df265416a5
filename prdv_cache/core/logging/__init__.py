from .logger import (
    clear_run_id,
    get_logger,
    get_run_id,
    log_stage,
    set_run_id,
    setup_logging,
)

__all__ = [
    "clear_run_id",
    "get_logger",
    "get_run_id",
    "log_stage",
    "set_run_id",
    "setup_logging",
]
