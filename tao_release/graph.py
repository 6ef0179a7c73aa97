"""Ordering of monorepo members.

Members are versioned and published dependencies first: when package A
depends on package B, B comes before A.
"""

from __future__ import annotations

import heapq
from collections.abc import Mapping


def topo_sort(packages: Mapping[str, list[str]]) -> list[str]:
    """Order package names so that each comes after its dependencies.

    Among the packages ready at the same time the alphabetical order wins, so
    the result does not depend on the order of ``packages``. Dependencies on
    names that are not keys of ``packages`` (registry packages) are ignored.

    Args:
        packages: Map of package name → names of the packages it depends on.

    Raises:
        RuntimeError: If some packages depend on each other in a cycle.

    Example:
        topo_sort({"a": ["b"], "b": ["c"], "c": []}) → ["c", "b", "a"]
    """
    pending = {name: {dep for dep in deps if dep in packages} for name, deps in packages.items()}
    dependents: dict[str, set[str]] = {name: set() for name in packages}
    for name, deps in pending.items():
        for dep in deps:
            dependents[dep].add(name)

    ready = [name for name, deps in pending.items() if not deps]
    heapq.heapify(ready)
    order: list[str] = []
    while ready:
        name = heapq.heappop(ready)
        order.append(name)
        for dependent in dependents[name]:
            pending[dependent].discard(name)
            if not pending[dependent]:
                heapq.heappush(ready, dependent)

    if len(order) < len(packages):
        stuck = ", ".join(sorted(set(packages) - set(order)))
        raise RuntimeError(f"Dependency cycle detected between: {stuck}")
    return order
