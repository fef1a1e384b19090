"""Fallback chain construction.

Each task has a static default order over the closed ``ProviderName`` set.
A preferred provider is promoted to the front with its original slot
removed; everything else keeps its order and ``local`` always ends the
chain.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from textsense.domain.enums import ProviderName, TaskType

DEFAULT_TASK_CHAINS: dict[TaskType, tuple[ProviderName, ...]] = {
    TaskType.EXPLANATION: (ProviderName.GROQ, ProviderName.CLAUDE, ProviderName.LOCAL),
    TaskType.SUMMARY: (ProviderName.CLAUDE, ProviderName.GROQ, ProviderName.LOCAL),
}


def validate_chains(chains: Mapping[TaskType, Sequence[ProviderName]]) -> None:
    """Every task needs a chain, and every chain must end in ``local``."""
    missing = [task.value for task in TaskType if task not in chains]
    if missing:
        raise ValueError(f"No fallback chain for task(s): {', '.join(missing)}")
    for task, chain in chains.items():
        if not chain or chain[-1] is not ProviderName.LOCAL:
            raise ValueError(f"Fallback chain for {task.value!r} must end with 'local'")
        if len(set(chain)) != len(chain):
            raise ValueError(f"Fallback chain for {task.value!r} has duplicates")


def promote(
    chain: Sequence[ProviderName], preferred: ProviderName | None
) -> tuple[ProviderName, ...]:
    """Move ``preferred`` to the front, dropping its original slot."""
    if preferred is None:
        return tuple(chain)
    return (preferred, *(p for p in chain if p is not preferred))


def build_provider_chain(
    task: TaskType,
    preferred: ProviderName | None = None,
    *,
    chains: Mapping[TaskType, Sequence[ProviderName]] = DEFAULT_TASK_CHAINS,
) -> list[ProviderName]:
    ordered = promote(chains[task], preferred)
    # de-duplicate, order preserved
    result = list(dict.fromkeys(ordered))
    if ProviderName.LOCAL not in result:
        result.append(ProviderName.LOCAL)
    return result


validate_chains(DEFAULT_TASK_CHAINS)
