"""
Cross-stack references
Driver side: check referenced outputs exist before a stack is applied
Program side: read them through pulumi.StackReference
"""

import logging
from typing import Dict, Mapping

import pulumi
from pulumi import automation as auto

from .context import ExecutionContext
from .errors import StackReferenceError

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """Outputs captured during this run, falling back to the engine for earlier runs"""

    def __init__(self, automation, context: ExecutionContext):
        self.automation = automation
        self.context = context
        self.outputs: Dict[str, Mapping[str, auto.OutputValue]] = {}

    def record(self, stack: str, outputs: Mapping[str, auto.OutputValue]):
        self.outputs[stack] = dict(outputs or {})

    def outputs_of(self, stack: str) -> Mapping[str, auto.OutputValue]:
        if stack not in self.outputs:
            logger.debug("Reading outputs of %s from the engine", stack)
            self.outputs[stack] = dict(self.automation.stack_outputs(self.context.qualified(stack)) or {})
        return self.outputs[stack]

    def require(self, spec):
        """Raise StackReferenceError unless every output spec reads is available"""
        for stack, names in spec.references.items():
            try:
                available = self.outputs_of(stack)
            except StackReferenceError as e:
                raise StackReferenceError(
                    spec.name, f"references stack '{stack}' which has never been applied"
                ) from e
            missing = [name for name in names if name not in available]
            if missing:
                raise StackReferenceError(
                    spec.name, f"stack '{stack}' has no output(s) {', '.join(missing)}"
                )


class StackReferences:
    """One pulumi.StackReference per referenced stack inside a program"""

    def __init__(self, ctx: ExecutionContext):
        self.ctx = ctx
        self._refs: Dict[str, pulumi.StackReference] = {}

    def ref(self, stack: str) -> pulumi.StackReference:
        if stack not in self._refs:
            self._refs[stack] = pulumi.StackReference(self.ctx.reference(stack))
        return self._refs[stack]

    def get_output(self, stack: str, name: str) -> pulumi.Output:
        return self.ref(stack).require_output(name)
