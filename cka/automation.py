"""
Pulumi Automation API wrapper
Brings a single stack up or down; sequencing lives in runner.py
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

import pulumi
from pulumi import automation as auto

from .context import ExecutionContext
from .errors import StackReferenceError
from .store import ConfigMap, merge_config_maps

logger = logging.getLogger(__name__)

# create_program(ctx) -> zero-argument program returning {output name: value}
ProgramFactory = Callable[[ExecutionContext], Callable[[], Dict[str, Any]]]
OutputMap = Dict[str, auto.OutputValue]


def _noop_program():
    pass


class PulumiAutomation:
    """Runs stacks of one Pulumi project with shared global config and hooks"""

    def __init__(self, project_name: str, context: ExecutionContext,
                 debug: bool = False,
                 global_config_map: Optional[Mapping[str, auto.ConfigValue]] = None,
                 before_pulumi_run: Optional[Callable[..., None]] = None,
                 after_pulumi_run: Optional[Callable[..., None]] = None):
        self.project_name = project_name
        self.context = context
        self.debug = debug
        self.global_config_map = dict(global_config_map or {})
        self.before_pulumi_run = before_pulumi_run
        self.after_pulumi_run = after_pulumi_run

    def _on_output(self):
        return print if self.debug else None

    def stack_up(self, stack_name: str, create_program: ProgramFactory,
                 config_map: Optional[ConfigMap] = None) -> OutputMap:
        """
        Create or select a stack, configure it and apply its program

        Args:
            stack_name: organization/stack
            create_program: factory called with this stack's ExecutionContext
            config_map: stack-specific config, overrides global config

        Returns:
            Stack outputs; secret outputs are flagged, not redacted
        """
        if not stack_name:
            raise ValueError("stack name must not be empty")

        if self.before_pulumi_run:
            self.before_pulumi_run(stack_name=stack_name)

        ctx = self.context.for_stack(stack_name)
        program = create_program(ctx)

        def pulumi_program():
            outputs = program() or {}
            for name, value in outputs.items():
                pulumi.export(name, value)

        print(f"🔧 Setting up stack '{stack_name}'...")
        stack = auto.create_or_select_stack(
            stack_name=stack_name,
            project_name=self.project_name,
            program=pulumi_program,
        )

        merged = merge_config_maps(self.global_config_map, config_map)
        stack.set_all_config(merged)

        logger.info("Running pulumi up on %s", stack_name)
        result = stack.up(on_output=self._on_output())
        logger.debug("Update summary for %s: %s",
                     stack_name, result.summary.resource_changes)

        if self.after_pulumi_run:
            self.after_pulumi_run(stack_name=stack_name, config_map=merged)

        print(f"✅ Successfully set up stack '{stack_name}'")
        return result.outputs

    def stack_destroy(self, stack_name: str, remove: bool = True):
        """Destroy every resource in a stack and optionally remove the stack itself"""
        if not stack_name:
            raise ValueError("stack name must not be empty")

        print(f"🔥 Destroying stack '{stack_name}'...")
        stack = auto.select_stack(
            stack_name=stack_name,
            project_name=self.project_name,
            program=_noop_program,
        )

        logger.info("Running pulumi destroy on %s", stack_name)
        stack.destroy(on_output=self._on_output())

        if remove:
            stack.workspace.remove_stack(stack_name)
            if self.after_pulumi_run:
                self.after_pulumi_run(stack_name=stack_name, remove=True)

        print(f"✅ Successfully destroyed stack '{stack_name}'")

    def stack_outputs(self, stack_name: str) -> OutputMap:
        """Outputs of an existing stack, without applying it"""
        try:
            stack = auto.select_stack(
                stack_name=stack_name,
                project_name=self.project_name,
                program=_noop_program,
            )
        except auto.StackNotFoundError as e:
            raise StackReferenceError(stack_name, "stack has never been applied") from e
        return stack.outputs()
