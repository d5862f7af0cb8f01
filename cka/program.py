"""
Main Pulumi program
Picks the stack program for the stack the driver is applying
"""

from typing import Any, Callable, Dict

import pulumi

from .context import ExecutionContext
from .stacks import resolve_stack_program


def create_program(ctx: ExecutionContext) -> Callable[[], Dict[str, Any]]:
    """Program factory handed to PulumiAutomation.stack_up"""
    stack_program = resolve_stack_program(ctx.current_stack)

    def main() -> Dict[str, Any]:
        pulumi.log.info(f"Building stack {ctx.current_stack} for '{ctx.command}'")
        return stack_program(ctx)

    return main
