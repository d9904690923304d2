import logging

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logger(name: str = "aurumsim", level: int | str = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)
    # 控制台 handler（同名 logger 只挂一次，避免重复输出）
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(ch)
    return logger


def set_global_level(level: int | str) -> None:
    """统一调整本项目各组件 logger 的级别（CLI `--log-level` 使用）。"""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    for name in ("price-sim", "decision", "ledger", "session", "journal", "replay", "aurumsim"):
        logging.getLogger(name).setLevel(level)
