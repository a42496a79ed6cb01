from __future__ import annotations

import logging

from colorama import Fore, Style, just_fix_windows_console

# Same palette the console program uses for its success/error messages.
LEVEL_COLORS = {
    logging.DEBUG: Fore.LIGHTBLACK_EX,
    logging.INFO: Fore.LIGHTGREEN_EX,
    logging.WARNING: Fore.LIGHTYELLOW_EX,
    logging.ERROR: Fore.LIGHTRED_EX,
    logging.CRITICAL: Fore.LIGHTRED_EX + Style.BRIGHT,
}


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return text
        return color + text + Style.RESET_ALL


def configure_logging(level: str = 'info') -> None:
    just_fix_windows_console()

    handler = logging.StreamHandler()
    handler.setFormatter(ColorFormatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
