"""Dependency-first execution ordering for workflow steps."""

from __future__ import annotations

from typing import Dict, Iterable, List

from .contracts import WorkflowStepDefinition
from .errors import CyclicDependencyError

_VISITING = 1
_DONE = 2


def execution_order(steps: Iterable[WorkflowStepDefinition]) -> List[str]:
    """Return step ids so that every step follows all of its dependencies.

    Traversal is depth-first, rooted at each step in declaration order.
    Dependencies naming unknown steps are ignored.

    Raises:
        CyclicDependencyError: If the dependencies contain a cycle.
    """
    steps = list(steps)
    deps: Dict[str, List[str]] = {s.id: list(s.dependencies) for s in steps}
    state: Dict[str, int] = {}
    order: List[str] = []

    for root in deps:
        if root in state:
            continue
        # Each frame is (step id, index of next dependency to visit).
        stack: List[List] = [[root, 0]]
        path: List[str] = [root]
        state[root] = _VISITING

        while stack:
            frame = stack[-1]
            node, idx = frame
            node_deps = deps[node]

            if idx < len(node_deps):
                frame[1] += 1
                dep = node_deps[idx]
                if dep not in deps:
                    continue
                dep_state = state.get(dep)
                if dep_state == _VISITING:
                    start = path.index(dep)
                    raise CyclicDependencyError(path[start:] + [dep])
                if dep_state == _DONE:
                    continue
                state[dep] = _VISITING
                stack.append([dep, 0])
                path.append(dep)
                continue

            stack.pop()
            path.pop()
            state[node] = _DONE
            order.append(node)

    return order
