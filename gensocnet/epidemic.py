"""Epidemic module — discrete-time SIR over dynamic contact networks.

Implements:
  - Transmission: each infected individual i exposes each other individual j
    with probability min(1, A[i, j] × si); a susceptible individual is
    infected if at least one exposure succeeds (OR across contacts)
  - Recovery I → R with probability ir, from the pre-transmission infected set
  - Resusceptibility R → S with probability rs
  - Adaptive variant: when prevalence exceeds prev_threshold, each edge of
    the current snapshot is cut (down-weighted to cut_weight) with
    probability p_cut before transmission
  - Driving loop over a pre-generated sequence of seasonal snapshots,
    yielding the population state (or prevalence) after every step

Per-step order is fixed: S→I, then I→R, then R→S.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional, Sequence, Tuple, Union

import numpy as np

from gensocnet.config import AdaptiveSection, EpidemicSection, SimulationConfig
from gensocnet.networks import seasonal_network_sequence, validate_adjacency
from gensocnet.rng import create_rng_hierarchy, get_replicate_rng
from gensocnet.types import (
    AdaptiveParams,
    EpidemicParams,
    PopulationState,
)


# ═══════════════════════════════════════════════════════════════════════
# TRANSITIONS
# ═══════════════════════════════════════════════════════════════════════

def transmit(
    S: np.ndarray,
    I: np.ndarray,
    network: np.ndarray,
    si: float,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """S → I along network edges.

    Draws one Bernoulli trial per (infected, other) pair with success
    probability min(1, weight × si). Unweighted snapshots have weight 1.

    Args:
        S: Susceptible indicator (bool, length n).
        I: Infected indicator (bool, length n).
        network: (n, n) adjacency snapshot.
        si: Transmission probability per infectious contact.
        rng: Random stream.

    Returns:
        New (S, I) arrays. Inputs are not modified.
    """
    S = np.array(S, dtype=bool)
    I = np.array(I, dtype=bool)
    infected = np.flatnonzero(I)
    if infected.size == 0:
        return S, I

    # Integer-array indexing keeps a (k, n) matrix even when k == 1
    contact_p = np.minimum(np.asarray(network)[infected, :] * si, 1.0)
    hits = rng.random(contact_p.shape) < contact_p
    new_infections = hits.any(axis=0) & S

    S[new_infections] = False
    I[new_infections] = True
    return S, I


def timestep(
    S: np.ndarray,
    I: np.ndarray,
    R: np.ndarray,
    network: np.ndarray,
    si: float,
    ir: float,
    rs: float,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """One SIR step on one network snapshot.

    Sequence:
      1. Snapshot I as I_old
      2. Transmission (only if anyone is infected)
      3. Recovery of I_old individuals with probability ir
      4. Resusceptibility of recovered individuals with probability rs

    Individuals infected in step 2 cannot recover in step 3.

    Returns:
        New (S, I, R) arrays.
    """
    S = np.array(S, dtype=bool)
    I = np.array(I, dtype=bool)
    R = np.array(R, dtype=bool)
    n = S.size
    I_old = I.copy()

    if I.any():
        S, I = transmit(S, I, network, si, rng)

    recovered = I_old & (rng.random(n) < ir)
    I[recovered] = False
    R[recovered] = True

    resusceptible = R & (rng.random(n) < rs)
    R[resusceptible] = False
    S[resusceptible] = True

    return S, I, R


def prev_adj(
    network: np.ndarray,
    I: np.ndarray,
    prev_threshold: float,
    p_cut: float,
    rng: np.random.Generator,
    cut_weight: float = 0.001,
) -> np.ndarray:
    """Prevalence-triggered edge cutting.

    If the infected fraction strictly exceeds prev_threshold, each existing
    undirected edge is cut with probability p_cut. A cut edge is lowered to
    cut_weight in both directions rather than removed; edges already
    lighter than cut_weight keep their weight.

    Returns:
        Adjusted copy of network. The input snapshot is never modified.
    """
    A = np.array(network, dtype=np.float64)
    I = np.asarray(I, dtype=bool)
    prevalence = I.sum() / I.size if I.size else 0.0
    if prevalence <= prev_threshold:
        return A

    rows, cols = np.nonzero(np.triu(A, k=1))
    cut = rng.random(rows.size) < p_cut
    r, c = rows[cut], cols[cut]
    A[r, c] = np.minimum(A[r, c], cut_weight)
    A[c, r] = A[r, c]
    return A


def adaptive_timestep(
    S: np.ndarray,
    I: np.ndarray,
    R: np.ndarray,
    network: np.ndarray,
    params: EpidemicParams,
    adaptive: AdaptiveParams,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """prev_adj on this step's snapshot, then a standard timestep."""
    adjusted = prev_adj(
        network, I, adaptive.prev_threshold, adaptive.p_cut, rng,
        cut_weight=adaptive.cut_weight,
    )
    return timestep(S, I, R, adjusted, params.si, params.ir, params.rs, rng)


# ═══════════════════════════════════════════════════════════════════════
# DRIVING LOOP
# ═══════════════════════════════════════════════════════════════════════

def initialize_population(
    n: int,
    n_infected: int,
    rng: np.random.Generator,
) -> PopulationState:
    """Everyone susceptible except n_infected individuals chosen at random."""
    if not (0 <= n_infected <= n):
        raise ValueError(
            f"n_infected must be in [0, {n}], got {n_infected}"
        )
    state = PopulationState.susceptible(n)
    if n_infected > 0:
        idx = rng.choice(n, size=n_infected, replace=False)
        state.S[idx] = False
        state.I[idx] = True
    return state


def iter_epidemic(
    state: PopulationState,
    networks: Sequence[np.ndarray],
    params: EpidemicParams,
    rng: np.random.Generator,
    adaptive: Optional[AdaptiveParams] = None,
) -> Iterator[PopulationState]:
    """Advance the population over a snapshot sequence, one step per snapshot.

    The starting state is not modified. Yields a new PopulationState after
    every step, so the generator has exactly len(networks) items.

    Raises:
        ValueError: If a snapshot is invalid or its size doesn't match
            the population.
    """
    current = state.copy()
    for t, network in enumerate(networks):
        A = validate_adjacency(network)
        if A.shape[0] != current.n:
            raise ValueError(
                f"snapshot {t} has {A.shape[0]} nodes, population has {current.n}"
            )
        if adaptive is not None:
            S, I, R = adaptive_timestep(
                current.S, current.I, current.R, A, params, adaptive, rng,
            )
        else:
            S, I, R = timestep(
                current.S, current.I, current.R, A,
                params.si, params.ir, params.rs, rng,
            )
        current = PopulationState(S=S, I=I, R=R, ids=current.ids)
        yield current


def prevalence_series(
    state: PopulationState,
    networks: Sequence[np.ndarray],
    params: EpidemicParams,
    rng: np.random.Generator,
    adaptive: Optional[AdaptiveParams] = None,
) -> Iterator[float]:
    """Lazily yield prevalence (n_I / n) after each step."""
    for step_state in iter_epidemic(state, networks, params, rng, adaptive):
        yield step_state.prevalence


# ═══════════════════════════════════════════════════════════════════════
# EPIDEMIC RUNS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class EpidemicResult:
    """Results from one epidemic replicate."""
    n_steps: int = 0
    n_individuals: int = 0
    prevalence: Optional[np.ndarray] = None     # (n_steps,) float
    n_S: Optional[np.ndarray] = None            # (n_steps,) int
    n_I: Optional[np.ndarray] = None
    n_R: Optional[np.ndarray] = None
    cut_triggered: Optional[np.ndarray] = None  # (n_steps,) bool; adaptive runs only
    total_infections: int = 0                   # new infections, initial seeds excluded
    peak_prevalence: float = 0.0
    peak_step: int = -1
    initial_prevalence: float = 0.0


def run_epidemic(
    cfg: EpidemicSection,
    rng: np.random.Generator,
    adaptive_cfg: Optional[AdaptiveSection] = None,
    networks: Optional[Sequence[np.ndarray]] = None,
) -> EpidemicResult:
    """Run one epidemic replicate.

    Seeds cfg.n_initial_infected infections, draws the seasonal snapshot
    sequence (unless `networks` is given) and records compartment counts
    after every step.

    Args:
        cfg: Epidemic configuration.
        rng: Random stream for this replicate.
        adaptive_cfg: Adaptive rewiring configuration; ignored if disabled.
        networks: Optional pre-generated snapshot sequence.

    Returns:
        EpidemicResult with per-step timeseries.
    """
    params = cfg.params()
    adaptive = adaptive_cfg.params() if adaptive_cfg is not None else None
    n = cfg.n_individuals

    state = initialize_population(n, cfg.n_initial_infected, rng)
    if networks is None:
        networks = seasonal_network_sequence(
            n, cfg.season_probs, cfg.steps_per_season, cfg.n_steps, rng,
        )
    n_steps = len(networks)

    prevalence = np.zeros(n_steps, dtype=np.float64)
    n_S = np.zeros(n_steps, dtype=np.int32)
    n_I = np.zeros(n_steps, dtype=np.int32)
    n_R = np.zeros(n_steps, dtype=np.int32)
    cut_triggered = np.zeros(n_steps, dtype=bool)
    total_infections = 0

    previous = state
    for t, current in enumerate(iter_epidemic(state, networks, params, rng, adaptive)):
        if adaptive is not None:
            cut_triggered[t] = previous.prevalence > adaptive.prev_threshold
        total_infections += int(np.sum(current.I & previous.S))
        prevalence[t] = current.prevalence
        n_S[t] = current.n_S
        n_I[t] = current.n_I
        n_R[t] = current.n_R
        previous = current

    peak_step = int(np.argmax(prevalence)) if n_steps > 0 else -1
    return EpidemicResult(
        n_steps=n_steps,
        n_individuals=n,
        prevalence=prevalence,
        n_S=n_S,
        n_I=n_I,
        n_R=n_R,
        cut_triggered=cut_triggered,
        total_infections=total_infections,
        peak_prevalence=float(prevalence[peak_step]) if n_steps > 0 else 0.0,
        peak_step=peak_step,
        initial_prevalence=state.prevalence,
    )


@dataclass
class EpidemicEnsembleResult:
    """Prevalence trajectories for every replicate of one scenario."""
    prevalence: np.ndarray                      # (n_replicates, n_steps)
    adaptive: bool = False
    results: list = field(default_factory=list)

    @property
    def n_replicates(self) -> int:
        return int(self.prevalence.shape[0])

    def mean_prevalence(self) -> np.ndarray:
        return self.prevalence.mean(axis=0)

    def quantiles(self, q: Sequence[float] = (0.025, 0.5, 0.975)) -> np.ndarray:
        """Per-step prevalence quantiles, shape (len(q), n_steps)."""
        return np.quantile(self.prevalence, q, axis=0)

    def save(self, path: Union[str, Path], metadata: Optional[Dict[str, str]] = None) -> None:
        """Save trajectories to a compressed npz file."""
        arrays = {
            'prevalence': self.prevalence,
            'adaptive': np.array(self.adaptive),
            'total_infections': np.array(
                [r.total_infections for r in self.results], dtype=np.int32,
            ),
        }
        for key, value in (metadata or {}).items():
            arrays[f'meta_{key}'] = np.array(value)
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(path, **arrays)


def run_epidemic_replicates(
    config: SimulationConfig,
    progress: bool = False,
) -> EpidemicEnsembleResult:
    """Run config.simulation.n_replicates independent epidemic replicates.

    Replicate i uses stream 'rep_i' of the seeded hierarchy, so results
    don't depend on how many replicates are requested.
    """
    n_reps = config.simulation.n_replicates
    rngs = create_rng_hierarchy(config.simulation.seed, n_reps)
    adaptive_on = config.adaptive.enabled

    results = []
    for rep in range(n_reps):
        rng = get_replicate_rng(rngs, rep)
        result = run_epidemic(config.epidemic, rng, adaptive_cfg=config.adaptive)
        results.append(result)
        if progress:
            print(
                f"[epidemic] replicate {rep + 1}/{n_reps}: "
                f"peak prevalence {result.peak_prevalence:.3f} "
                f"at step {result.peak_step}"
            )

    prevalence = np.vstack([r.prevalence for r in results])
    return EpidemicEnsembleResult(
        prevalence=prevalence, adaptive=adaptive_on, results=results,
    )


def attack_rate(result: EpidemicResult) -> float:
    """Infection events per individual, seeds excluded.

    Can exceed 1 when rs > 0 lets individuals be reinfected.
    """
    if result.n_individuals == 0:
        return 0.0
    return result.total_infections / result.n_individuals

