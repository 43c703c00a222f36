"""Worker groups, job chain and stage ordering for the message pipeline."""

from typing import Dict, List, Optional

# Job type -> next job in chain
JOB_CHAIN: Dict[str, Optional[str]] = {
    "normalize_message": "embed_message",
    "embed_message": "annotate_message",
    "annotate_message": None,
    "batch_embed": None,
    "batch_annotate": None,
}

JOB_TYPES = tuple(JOB_CHAIN)

# Worker group -> job types it consumes
WORKER_GROUPS: Dict[str, List[str]] = {
    "normalize": ["normalize_message"],
    "embed": ["embed_message", "batch_embed"],
    "annotate": ["annotate_message", "batch_annotate"],
}

DEFAULT_WORKER_GROUP = "normalize"

# Worker group -> upstream groups whose output it consumes
STAGE_DEPENDENCIES: Dict[str, List[str]] = {
    "normalize": [],
    "embed": ["normalize"],
    "annotate": ["embed"],
}


def resolve_stage_order(dependencies: Dict[str, List[str]]) -> List[str]:
    """
    Order worker groups so every group comes after its upstream groups.

    Ties keep the declaration order of ``dependencies``.

    Raises:
        ValueError: On an unknown upstream group or a dependency cycle
    """
    order: List[str] = []
    remaining = list(dependencies)

    while remaining:
        ready = [
            group for group in remaining
            if all(upstream in order for upstream in dependencies[group])
        ]
        if not ready:
            unknown = {
                upstream
                for group in remaining
                for upstream in dependencies[group]
                if upstream not in dependencies
            }
            if unknown:
                raise ValueError(f"Unknown upstream worker groups: {sorted(unknown)}")
            raise ValueError(f"Dependency cycle among worker groups: {remaining}")

        order.append(ready[0])
        remaining.remove(ready[0])

    return order


TICK_ORDER: List[str] = resolve_stage_order(STAGE_DEPENDENCIES)


def job_types_for_group(worker_group: str) -> List[str]:
    """Job types consumed by a worker group, falling back to the default group."""
    return WORKER_GROUPS.get(worker_group) or WORKER_GROUPS[DEFAULT_WORKER_GROUP]
