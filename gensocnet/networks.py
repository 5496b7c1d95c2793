"""Network snapshots: generation, validation and component counting.

Snapshots are dense symmetric numpy adjacency matrices with zero
diagonal. Random-graph families come from networkx; component counts
from scipy's sparse graph routines.

Families:
  - erdos_renyi:      G(n, p) with p = mean_degree / (n - 1)
  - barabasi_albert:  preferential attachment with m = round(mean_degree / 2)

The seasonal sequence used by the epidemic example draws one G(n, p)
snapshot per timestep, with p cycling through per-season values.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Sequence

import networkx as nx
import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components

NetworkGenerator = Callable[[np.random.Generator], np.ndarray]


# ═══════════════════════════════════════════════════════════════════════
# VALIDATION & CONVERSION
# ═══════════════════════════════════════════════════════════════════════

def validate_adjacency(adjacency: np.ndarray) -> np.ndarray:
    """Check a snapshot is square, symmetric, non-negative, loop-free.

    Symmetry is exact (no tolerance). Returns the input as a float64 array. Raises ValueError otherwise.
    """
    A = np.asarray(adjacency, dtype=np.float64)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"adjacency must be a square matrix, got shape {A.shape}")
    if np.any(A < 0):
        raise ValueError("adjacency must be non-negative")
    if not np.array_equal(A, A.T):
        raise ValueError("adjacency must be symmetric")
    if np.any(np.diag(A) != 0):
        raise ValueError("adjacency must have a zero diagonal (no self-loops)")
    return A


def graph_to_adjacency(G: nx.Graph, n: int) -> np.ndarray:
    """Dense float adjacency for nodes 0..n-1 (weights taken from 'weight')."""
    return nx.to_numpy_array(G, nodelist=list(range(n)), dtype=np.float64)


def adjacency_to_graph(adjacency: np.ndarray) -> nx.Graph:
    """networkx Graph with edge weights from the matrix entries."""
    return nx.from_numpy_array(np.asarray(adjacency, dtype=np.float64))


def count_components(adjacency: np.ndarray) -> int:
    """Number of connected components (isolated nodes count as one each)."""
    A = np.asarray(adjacency)
    if A.shape[0] == 0:
        return 0
    return int(connected_components(
        csr_matrix(A), directed=False, return_labels=False,
    ))


def is_connected(adjacency: np.ndarray) -> bool:
    return count_components(adjacency) == 1


def degrees(adjacency: np.ndarray) -> np.ndarray:
    """Row-sum degree (strength, for weighted snapshots)."""
    return np.asarray(adjacency).sum(axis=1)


# ═══════════════════════════════════════════════════════════════════════
# RANDOM-GRAPH FAMILIES
# ═══════════════════════════════════════════════════════════════════════

def _nx_seed(rng: np.random.Generator) -> int:
    """Draw an integer seed for networkx from the caller's stream."""
    return int(rng.integers(0, 2**31 - 1))


def erdos_renyi_matrix(n: int, p: float, rng: np.random.Generator) -> np.ndarray:
    """G(n, p) adjacency matrix."""
    if not (0.0 <= p <= 1.0):
        raise ValueError(f"edge probability must be in [0, 1], got {p}")
    G = nx.gnp_random_graph(n, p, seed=_nx_seed(rng))
    return graph_to_adjacency(G, n)


def preferential_attachment_matrix(
    n: int, m: int, rng: np.random.Generator,
) -> np.ndarray:
    """Barabási–Albert adjacency matrix; each new node attaches m edges."""
    if not (1 <= m < n):
        raise ValueError(f"attachment parameter m must satisfy 1 <= m < n, got m={m}, n={n}")
    G = nx.barabasi_albert_graph(n, m, seed=_nx_seed(rng))
    return graph_to_adjacency(G, n)


def family_generator(family: str, n: int, mean_degree: float) -> NetworkGenerator:
    """Build a `rng -> adjacency` generator for a named family.

    Raises:
        ValueError: Unknown family name.
    """
    if family == 'erdos_renyi':
        p = mean_degree / (n - 1)
        return lambda rng: erdos_renyi_matrix(n, p, rng)
    if family == 'barabasi_albert':
        m = max(1, int(round(mean_degree / 2.0)))
        return lambda rng: preferential_attachment_matrix(n, m, rng)
    raise ValueError(
        f"unknown network family '{family}'; expected 'erdos_renyi' or "
        f"'barabasi_albert'"
    )


def sample_connected(
    generator: NetworkGenerator,
    rng: np.random.Generator,
    max_attempts: int = 1000,
) -> np.ndarray:
    """Draw from generator until the snapshot is a single component.

    Raises:
        RuntimeError: No connected draw within max_attempts.
    """
    for _ in range(max_attempts):
        A = generator(rng)
        if is_connected(A):
            return A
    raise RuntimeError(
        f"no single-component network after {max_attempts} attempts; "
        f"increase mean degree or max_attempts"
    )


def build_generators(
    families: Sequence[str],
    n: int,
    mean_degree: float,
) -> Dict[str, NetworkGenerator]:
    """Name → generator map for the configured families."""
    return {fam: family_generator(fam, n, mean_degree) for fam in families}


# ═══════════════════════════════════════════════════════════════════════
# SEASONAL SEQUENCES
# ═══════════════════════════════════════════════════════════════════════

def season_index(step: int, steps_per_season: int, n_seasons: int) -> int:
    """Season in force at a timestep; seasons repeat in order."""
    return (step // steps_per_season) % n_seasons


def seasonal_network_sequence(
    n: int,
    season_probs: Sequence[float],
    steps_per_season: int,
    n_steps: int,
    rng: np.random.Generator,
) -> List[np.ndarray]:
    """One independent G(n, p) snapshot per timestep.

    Args:
        n: Population size.
        season_probs: Edge probability for each season, cycled in order.
        steps_per_season: Timesteps before moving to the next season.
        n_steps: Sequence length.
        rng: Random stream.

    Returns:
        List of n_steps adjacency matrices.
    """
    if steps_per_season < 1:
        raise ValueError(f"steps_per_season must be >= 1, got {steps_per_season}")
    if len(season_probs) == 0:
        raise ValueError("season_probs must list at least one season")
    n_seasons = len(season_probs)
    return [
        erdos_renyi_matrix(
            n, season_probs[season_index(t, steps_per_season, n_seasons)], rng,
        )
        for t in range(n_steps)
    ]
