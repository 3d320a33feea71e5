import logging
import os
from logging.handlers import RotatingFileHandler

from smartinvoice.config import settings

CONSOLE_HANDLER = "smartinvoice-console"
FILE_HANDLER = "smartinvoice-file"
LOG_FILE = "smartinvoice.log"

# Her AI istegini INFO seviyesinde yazan kutuphaneler
_NOISY_LOGGERS = ("httpx", "httpcore")


def _default_log_dir() -> str:
    return settings.LOG_DIR or os.path.join(os.path.dirname(os.path.dirname(__file__)), "logs")


def setup_logging(log_dir: str | None = None) -> None:
    """
    Uygulama genelinde logging yapilandirmasini kurar.

    - Console handler: terminale LOG_LEVEL ve ustu mesajlari yazar.
    - File handler: <LOG_DIR>/smartinvoice.log (rotating, max 5MB, 3 yedek).
    - httpx/httpcore: gateway istek satirlari WARNING altinda yazilmaz.

    Handler'lar isimleriyle taninir; tekrar cagrilmasi (reload) handler cogaltmaz,
    baska araclarin (pytest, uvicorn) root'a ekledigi handler'lara dokunulmaz.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    installed = {handler.name for handler in root_logger.handlers}
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if CONSOLE_HANDLER not in installed:
        console_handler = logging.StreamHandler()
        console_handler.set_name(CONSOLE_HANDLER)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if FILE_HANDLER not in installed:
        log_dir = log_dir or _default_log_dir()
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, LOG_FILE),
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.set_name(FILE_HANDLER)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger(__name__).debug(
        "Logging yapilandirmasi tamamlandi (seviye: %s)", settings.LOG_LEVEL.upper()
    )
