"""
Stack lifecycle driver
Applies a plan in order and tears it down in reverse, one stack at a time
"""

import logging
from collections import OrderedDict
from typing import Callable, Iterable, Optional

from .automation import OutputMap, ProgramFactory, PulumiAutomation
from .plan import StackPlan
from .references import ReferenceResolver

logger = logging.getLogger(__name__)


def bring_up(automation: PulumiAutomation, plan: StackPlan,
             create_program: ProgramFactory,
             on_applied: Optional[Callable[[str, OutputMap], None]] = None) -> "OrderedDict[str, OutputMap]":
    """Apply every stack in plan order; the first failure stops the run

    on_applied is called with each stack name and its outputs as soon as that
    stack is up, so work that depends on early stacks survives later failures.
    """
    resolver = ReferenceResolver(automation, automation.context)
    results: "OrderedDict[str, OutputMap]" = OrderedDict()

    for position, spec in enumerate(plan.up_order(), start=1):
        logger.info("[%d/%d] up %s", position, len(plan), spec.name)
        resolver.require(spec)
        outputs = automation.stack_up(
            automation.context.qualified(spec.name),
            create_program,
            config_map=spec.config_map,
        )
        resolver.record(spec.name, outputs)
        results[spec.name] = outputs
        if on_applied is not None:
            on_applied(spec.name, outputs)

    return results


def tear_down(automation: PulumiAutomation, plan: StackPlan,
              remove: bool = True, keep: Iterable[str] = ()):
    """Destroy every stack in reverse plan order, skipping the ones in keep"""
    order = plan.destroy_order(keep)
    destroyed = []
    for position, spec in enumerate(order, start=1):
        logger.info("[%d/%d] destroy %s", position, len(order), spec.name)
        automation.stack_destroy(automation.context.qualified(spec.name), remove=remove)
        destroyed.append(spec.name)
    return destroyed
