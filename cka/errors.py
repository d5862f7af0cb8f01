"""
Error types raised by the cka driver
"""


class CkaError(Exception):
    """Base class for errors the CLI reports and exits on"""


class ConfigurationMissing(CkaError):
    """Required project or CLI configuration is absent"""


class StackReferenceError(CkaError):
    """A stack reads outputs of a stack that was never applied"""

    def __init__(self, stack_name: str, message: str):
        super().__init__(f"{stack_name}: {message}")
        self.stack_name = stack_name


class CleanupError(CkaError):
    """Local state cleanup failed for a reason other than a missing file"""
