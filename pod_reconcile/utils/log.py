import functools
import logging
import sys
from collections.abc import Callable
from typing import Literal, ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")

Color = Literal["red", "green", "yellow", "blue", "magenta", "cyan"]

_COLORS: dict[str, str] = {
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
}
_RESET = "\033[0m"

ROOT_LOGGER_NAME = "pod_reconcile"


def colorize(text: str, color: Color) -> str:
    if not sys.stderr.isatty():
        return text
    return f"{_COLORS[color]}{text}{_RESET}"


def _root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
        root.setLevel(logging.INFO)
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the ``pod_reconcile`` hierarchy.

    Modules outside the package (e.g. tests) still get a child of the
    package logger so that a single ``setLevel`` call controls everything.
    """
    _root_logger()
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def generate_log_decorator(
    logger: logging.Logger,
) -> Callable[..., Callable[[Callable[P, R]], Callable[P, R]]]:
    def log(
        prefix: Callable[..., str] | None = None,
        max_level: int = logging.INFO,
    ) -> Callable[[Callable[P, R]], Callable[P, R]]:
        def decorator(func: Callable[P, R]) -> Callable[P, R]:
            step = func.__name__.replace("_", " ")

            @functools.wraps(func)
            def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                head = prefix(*args, **kwargs) if prefix else ""
                logger.log(max_level, "%s%s...", head, step)
                result = func(*args, **kwargs)
                logger.log(min(max_level, logging.DEBUG), "%s%s: %s", head, step, "done")
                return result

            return wrapper

        return decorator

    return log
