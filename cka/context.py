"""
Execution context handed to every Pulumi program
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from pulumi import automation as auto


@dataclass(frozen=True)
class ExecutionContext:
    """What the CLI is doing and which stack a program is building"""

    command: str
    project: str
    organization: str
    cwd: str
    current_stack: Optional[str] = None
    global_config: Dict[str, auto.ConfigValue] = field(default_factory=dict)
    cli_options: Dict[str, Any] = field(default_factory=dict)
    cli_env: Optional[str] = None

    def for_stack(self, stack_name: str) -> "ExecutionContext":
        """Copy of this context bound to one stack (short or qualified name)"""
        return replace(self, current_stack=short_stack_name(stack_name))

    def qualified(self, stack: str) -> str:
        """Name used by the automation API: organization/stack"""
        return f"{self.organization}/{stack}" if self.organization else stack

    def reference(self, stack: str) -> str:
        """Name used by stack references: organization/project/stack"""
        return f"{self.organization}/{self.project}/{stack}"

    @property
    def debug(self) -> bool:
        return bool(self.cli_options.get("debug"))


def short_stack_name(stack_name: str) -> str:
    """Drop the organization prefix from a qualified stack name"""
    return stack_name.rsplit("/", 1)[-1]
