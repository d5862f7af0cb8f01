"""
Console and shell helpers for the CLI
"""

import logging
import subprocess
import sys

logger = logging.getLogger(__name__)

THEMES = {
    "info": "\033[94m",
    "success": "\033[32m",
    "output": "\033[38;2;194;195;255m",
    "error": "\033[31m",
    "warning": "\033[38;5;214m",
    "final": "\033[1;36m",
}
RESET = "\033[0m"


def color(theme: str, text: str) -> str:
    """Wrap text in the theme colour when stdout is a terminal"""
    if not sys.stdout.isatty():
        return text
    return f"{THEMES[theme]}{text}{RESET}"


def run_cli_cmd(cmd, cwd=None) -> str:
    """Run a command and return its stdout; non-zero exit raises CalledProcessError"""
    logger.debug("Running %s", cmd)
    result = subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True)
    return result.stdout


def configure_logging(debug: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
