"""Core data types for gensocnet.

This module is the single home for:
  - Compartment, RemovalPolicy enumerations
  - PopulationState: boolean S/I/R indicator vectors over individuals
  - EpidemicParams / AdaptiveParams: validated per-run probabilities

Epidemic and robustness modules import these types from here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Union

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class Compartment(IntEnum):
    """SIR compartments.

    S → I  (transmission along network edges)
    I → R  (recovery, probability ir per step)
    R → S  (loss of immunity, probability rs per step)
    """
    S = 0   # Susceptible
    I = 1   # Infected
    R = 2   # Recovered


class RemovalPolicy(str, Enum):
    """Node-removal ordering for robustness trials."""
    RANDOM = "random"
    BY_CONNECTEDNESS_DESC = "degree_desc"   # highest degree removed first
    BY_CONNECTEDNESS_ASC = "degree_asc"     # lowest degree removed first

    @classmethod
    def parse(cls, value: Union[str, "RemovalPolicy"]) -> "RemovalPolicy":
        """Coerce a policy name or member. Raises ValueError if unknown."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip()
            for member in cls:
                if key == member.value or key.upper() == member.name:
                    return member
        raise ValueError(
            f"unrecognized removal policy {value!r}; expected one of "
            f"{[m.value for m in cls]}"
        )


# ═══════════════════════════════════════════════════════════════════════
# PARAMETERS
# ═══════════════════════════════════════════════════════════════════════

def check_probability(name: str, value: float) -> float:
    """Return value as float, raising ValueError if outside [0, 1]."""
    value = float(value)
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be a probability in [0, 1], got {value}")
    return value


@dataclass(frozen=True)
class EpidemicParams:
    """Per-step transition probabilities for the SIR process."""
    si: float   # transmission per infectious contact
    ir: float   # recovery
    rs: float   # resusceptibility

    def __post_init__(self):
        for name in ('si', 'ir', 'rs'):
            object.__setattr__(self, name, check_probability(name, getattr(self, name)))


@dataclass(frozen=True)
class AdaptiveParams:
    """Prevalence-triggered edge cutting.

    When the infected fraction exceeds prev_threshold, each undirected edge
    is cut with probability p_cut. A cut edge keeps weight cut_weight.
    """
    prev_threshold: float
    p_cut: float
    cut_weight: float = 0.001

    def __post_init__(self):
        object.__setattr__(self, 'prev_threshold',
                           check_probability('prev_threshold', self.prev_threshold))
        object.__setattr__(self, 'p_cut', check_probability('p_cut', self.p_cut))
        if not (0.0 < self.cut_weight < 1.0):
            raise ValueError(
                f"cut_weight must be in (0, 1), got {self.cut_weight}"
            )


# ═══════════════════════════════════════════════════════════════════════
# POPULATION STATE
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class PopulationState:
    """Compartment membership for a fixed population.

    S, I, R are boolean arrays of equal length; exactly one is True per
    individual.
    """
    S: np.ndarray
    I: np.ndarray
    R: np.ndarray
    ids: Optional[np.ndarray] = field(default=None)

    def __post_init__(self):
        self.S = np.asarray(self.S, dtype=bool)
        self.I = np.asarray(self.I, dtype=bool)
        self.R = np.asarray(self.R, dtype=bool)
        if not (self.S.shape == self.I.shape == self.R.shape) or self.S.ndim != 1:
            raise ValueError(
                f"S, I, R must be 1-D arrays of equal length, got shapes "
                f"{self.S.shape}, {self.I.shape}, {self.R.shape}"
            )
        if self.ids is None:
            self.ids = np.arange(self.S.size)
        else:
            self.ids = np.asarray(self.ids)
            if self.ids.shape != self.S.shape:
                raise ValueError("ids must match the population size")
        self.check_exclusive()

    @classmethod
    def susceptible(cls, n: int) -> "PopulationState":
        """Everyone susceptible."""
        return cls(
            S=np.ones(n, dtype=bool),
            I=np.zeros(n, dtype=bool),
            R=np.zeros(n, dtype=bool),
        )

    @property
    def n(self) -> int:
        return int(self.S.size)

    @property
    def n_S(self) -> int:
        return int(self.S.sum())

    @property
    def n_I(self) -> int:
        return int(self.I.sum())

    @property
    def n_R(self) -> int:
        return int(self.R.sum())

    @property
    def prevalence(self) -> float:
        return self.n_I / self.n if self.n > 0 else 0.0

    def compartments(self) -> np.ndarray:
        """Per-individual Compartment codes (int8)."""
        codes = np.full(self.n, Compartment.S, dtype=np.int8)
        codes[self.I] = Compartment.I
        codes[self.R] = Compartment.R
        return codes

    def check_exclusive(self) -> None:
        """Raise ValueError unless every individual is in exactly one compartment."""
        total = self.S.astype(np.int8) + self.I.astype(np.int8) + self.R.astype(np.int8)
        bad = np.flatnonzero(total != 1)
        if bad.size:
            raise ValueError(
                f"compartments not mutually exclusive for individuals "
                f"{self.ids[bad][:10].tolist()}"
            )

    def copy(self) -> "PopulationState":
        return PopulationState(
            S=self.S.copy(), I=self.I.copy(), R=self.R.copy(), ids=self.ids.copy(),
        )
