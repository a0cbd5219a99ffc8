"""
Step scheduler

Orders a skill's steps so every step comes after the steps it depends on.
"""

from collections.abc import Sequence

from pandora.engine.errors import CyclicDependencyError
from pandora.schemas.skill import SkillStep


def order_steps(steps: Sequence[SkillStep]) -> list[SkillStep]:
    """
    Topologically order steps with a depth-first visit

    Dependencies are looked up by id within the same list; an id that names no
    step is ignored. Independent steps keep their declaration order.

    Raises:
        CyclicDependencyError: If the dependencies form a cycle
    """
    by_id = {step.id: step for step in steps}
    visited: set[str] = set()
    in_progress: list[str] = []
    ordered: list[SkillStep] = []

    def visit(step: SkillStep) -> None:
        if step.id in visited:
            return
        if step.id in in_progress:
            start = in_progress.index(step.id)
            raise CyclicDependencyError([*in_progress[start:], step.id])

        in_progress.append(step.id)
        for dep_id in step.depends_on:
            dependency = by_id.get(dep_id)
            if dependency is not None:
                visit(dependency)
        in_progress.pop()

        visited.add(step.id)
        ordered.append(step)

    for step in steps:
        visit(step)

    return ordered
