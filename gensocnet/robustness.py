"""Robustness module — network fragmentation under sequential node removal.

For one network snapshot:
  1. Count components at time zero
  2. Fix the full removal order of n − 2 nodes (random permutation, or
     stable sort by degree, descending or ascending)
  3. Remove nodes one at a time (row + column), recounting components
     after each removal

The breakdown time of a trial is the first index whose component count
exceeds 1. Across replicates, breakdown times are summarized as a
survival curve: how many networks are still whole at each step.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

import numpy as np

from gensocnet.config import SimulationConfig
from gensocnet.networks import (
    NetworkGenerator,
    build_generators,
    count_components,
    degrees,
    sample_connected,
    validate_adjacency,
)
from gensocnet.rng import create_rng_hierarchy, get_replicate_rng
from gensocnet.types import RemovalPolicy


# ═══════════════════════════════════════════════════════════════════════
# SINGLE TRIAL
# ═══════════════════════════════════════════════════════════════════════

def removal_order(
    network: np.ndarray,
    policy: Union[str, RemovalPolicy],
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Node identifiers in removal order (all n nodes).

    Degree policies sort by row-sum degree of the unmodified network;
    ties keep identifier order, so the lowest identifier goes first.

    Raises:
        ValueError: Unrecognized policy, or RANDOM without an rng.
    """
    policy = RemovalPolicy.parse(policy)
    n = np.asarray(network).shape[0]
    if policy is RemovalPolicy.RANDOM:
        if rng is None:
            raise ValueError("RANDOM removal policy requires an rng")
        return rng.permutation(n)
    deg = degrees(network)
    if policy is RemovalPolicy.BY_CONNECTEDNESS_DESC:
        return np.argsort(-deg, kind='stable')
    return np.argsort(deg, kind='stable')


def measure_robustness(
    network: np.ndarray,
    policy: Union[str, RemovalPolicy],
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Component counts while removing nodes one at a time.

    Args:
        network: (n, n) symmetric adjacency, n >= 3.
        policy: RemovalPolicy member or its string value.
        rng: Random stream (required for RANDOM).

    Returns:
        int array of length n − 1: the time-zero count followed by the
        count after each of the n − 2 removals.

    Raises:
        ValueError: Fewer than 3 nodes, invalid adjacency, or unknown policy.
    """
    policy = RemovalPolicy.parse(policy)
    A = validate_adjacency(network)
    n = A.shape[0]
    if n < 3:
        raise ValueError(f"robustness needs at least 3 nodes, got {n}")

    counts = np.zeros(n - 1, dtype=np.int64)
    counts[0] = count_components(A)
    if counts[0] > 1:
        warnings.warn(
            f"network already has {counts[0]} components before any removal",
            UserWarning,
            stacklevel=2,
        )

    schedule = removal_order(A, policy, rng)[: n - 2]
    nodes_left = list(range(n))
    current = A
    for t, node in enumerate(schedule, start=1):
        pos = nodes_left.index(int(node))
        current = np.delete(np.delete(current, pos, axis=0), pos, axis=1)
        del nodes_left[pos]
        counts[t] = count_components(current)

    return counts


def breakdown_time(counts: Sequence[int]) -> Optional[int]:
    """Index of the first count above 1, or None if the network never split."""
    split = np.flatnonzero(np.asarray(counts) > 1)
    return int(split[0]) if split.size else None


def survival_curve(
    breakdown_times: Sequence[Optional[float]],
    n: int,
    replicate_count: int,
) -> np.ndarray:
    """Number of replicates still unbroken at each step.

    Entry t counts replicates whose breakdown time is undefined (None or
    NaN) or later than t.

    Args:
        breakdown_times: One entry per replicate.
        n: Network size; the curve has n − 1 entries.
        replicate_count: Number of replicates.

    Returns:
        Non-increasing int array of length n − 1 in [0, replicate_count].
    """
    if n < 3:
        raise ValueError(f"survival curve needs n >= 3, got {n}")
    if len(breakdown_times) != replicate_count:
        raise ValueError(
            f"expected {replicate_count} breakdown times, got {len(breakdown_times)}"
        )
    curve = np.full(n - 1, replicate_count, dtype=np.int64)
    steps = np.arange(n - 1)
    for bt in breakdown_times:
        if bt is None or np.isnan(bt):
            continue
        curve -= (steps >= int(bt)).astype(np.int64)
    return curve


# ═══════════════════════════════════════════════════════════════════════
# STUDIES ACROSS NETWORK FAMILIES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class RobustnessStudyResult:
    """Robustness trials for every network family.

    breakdown_times[family] is a float array (NaN = never broke);
    component_counts[family] has shape (n_replicates, n_nodes − 1).
    """
    n_nodes: int
    n_replicates: int
    policy: RemovalPolicy
    breakdown_times: Dict[str, np.ndarray] = field(default_factory=dict)
    component_counts: Dict[str, np.ndarray] = field(default_factory=dict)

    @property
    def families(self):
        return list(self.breakdown_times)

    def survival(self, family: str) -> np.ndarray:
        return survival_curve(
            list(self.breakdown_times[family]), self.n_nodes, self.n_replicates,
        )

    def breakdown_matrix(self) -> np.ndarray:
        """(n_families, n_replicates) breakdown times, families in insertion order."""
        return np.vstack([self.breakdown_times[f] for f in self.families])

    def save(self, path: Union[str, Path], metadata: Optional[Dict[str, str]] = None) -> None:
        """Save breakdown times, counts and survival curves to npz."""
        arrays = {
            'families': np.array(self.families),
            'policy': np.array(self.policy.value),
            'breakdown_matrix': self.breakdown_matrix(),
        }
        for fam in self.families:
            arrays[f'{fam}_counts'] = self.component_counts[fam]
            arrays[f'{fam}_survival'] = self.survival(fam)
        for key, value in (metadata or {}).items():
            arrays[f'meta_{key}'] = np.array(value)
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(path, **arrays)


def run_robustness_study(
    config: SimulationConfig,
    generators: Optional[Mapping[str, NetworkGenerator]] = None,
    progress: bool = False,
) -> RobustnessStudyResult:
    """Breakdown times for each network family under one removal policy.

    Replicate i of every family draws from stream 'rep_i': first the
    network, then the removal order.

    Args:
        config: Simulation configuration (robustness + simulation sections).
        generators: Extra `rng -> adjacency` families (e.g. an external
            trait-preference generator), added after the configured ones.
        progress: Print one line per family.
    """
    rb = config.robustness
    n_reps = config.simulation.n_replicates
    policy = RemovalPolicy.parse(rb.policy)

    families: Dict[str, NetworkGenerator] = build_generators(
        rb.families, rb.n_nodes, rb.mean_degree,
    )
    if generators:
        families.update(generators)

    result = RobustnessStudyResult(
        n_nodes=rb.n_nodes, n_replicates=n_reps, policy=policy,
    )
    for fam, generator in families.items():
        bts = np.full(n_reps, np.nan)
        counts = np.zeros((n_reps, rb.n_nodes - 1), dtype=np.int64)
        # Same seeded streams for every family: replicate i of each family
        # starts from identical random state
        rngs = create_rng_hierarchy(config.simulation.seed, n_reps)
        for rep in range(n_reps):
            rng = get_replicate_rng(rngs, rep)
            if rb.require_connected:
                A = sample_connected(generator, rng, rb.max_attempts)
            else:
                A = generator(rng)
            if A.shape[0] != rb.n_nodes:
                raise ValueError(
                    f"family '{fam}' produced a {A.shape[0]}-node network, "
                    f"expected {rb.n_nodes}"
                )
            counts[rep] = measure_robustness(A, policy, rng)
            bt = breakdown_time(counts[rep])
            if bt is not None:
                bts[rep] = bt
        result.breakdown_times[fam] = bts
        result.component_counts[fam] = counts
        if progress:
            n_broken = int(np.sum(~np.isnan(bts)))
            median = np.nanmedian(bts) if n_broken else float('nan')
            print(
                f"[robustness] {fam}: {n_broken}/{n_reps} broke, "
                f"median breakdown step {median:.1f}"
            )
    return result
