"""Configuration system for gensocnet.

Hierarchical YAML configuration with deep-merge support:
  default.yaml (base) → scenario override → sweep overrides

Each worked example owns its own section; nothing is shared between
examples except the master seed and replicate count.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from gensocnet.types import AdaptiveParams, EpidemicParams, RemovalPolicy


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Top-level run control."""
    seed: int = 42
    n_replicates: int = 100


@dataclass
class EpidemicSection:
    """SIR epidemic over seasonal random networks."""
    n_individuals: int = 50
    n_initial_infected: int = 1
    si: float = 0.1               # Transmission per infectious contact per step
    ir: float = 0.1               # Recovery per step
    rs: float = 0.05              # Resusceptibility per step
    n_steps: int = 100
    steps_per_season: int = 25
    # Edge probability of each season's random graphs, cycled in order
    season_probs: List[float] = field(default_factory=lambda: [0.04, 0.12])

    def params(self) -> EpidemicParams:
        return EpidemicParams(si=self.si, ir=self.ir, rs=self.rs)


@dataclass
class AdaptiveSection:
    """Prevalence-triggered edge cutting (adaptive rewiring)."""
    enabled: bool = False
    prev_threshold: float = 0.2   # Infected fraction that triggers cutting
    p_cut: float = 0.5            # Per-edge cut probability once triggered
    cut_weight: float = 0.001     # Residual weight of a cut edge

    def params(self) -> Optional[AdaptiveParams]:
        if not self.enabled:
            return None
        return AdaptiveParams(
            prev_threshold=self.prev_threshold,
            p_cut=self.p_cut,
            cut_weight=self.cut_weight,
        )


@dataclass
class RobustnessSection:
    """Sequential node removal over network families."""
    n_nodes: int = 50
    mean_degree: float = 4.0
    families: List[str] = field(
        default_factory=lambda: ['erdos_renyi', 'barabasi_albert']
    )
    policy: str = 'random'        # 'random', 'degree_desc', 'degree_asc'
    require_connected: bool = True
    max_attempts: int = 1000      # Resampling budget for the single-component constraint


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "results/"
    save_npz: bool = True


@dataclass
class SimulationConfig:
    """Complete configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    epidemic: EpidemicSection = field(default_factory=EpidemicSection)
    adaptive: AdaptiveSection = field(default_factory=AdaptiveSection)
    robustness: RobustnessSection = field(default_factory=RobustnessSection)
    output: OutputSection = field(default_factory=OutputSection)


KNOWN_FAMILIES = {'erdos_renyi', 'barabasi_albert'}


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections = {}
    section_map = {
        'simulation': SimulationSection,
        'epidemic': EpidemicSection,
        'adaptive': AdaptiveSection,
        'robustness': RobustnessSection,
        'output': OutputSection,
    }
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure."""
    sim = config.simulation
    if sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    if sim.n_replicates < 1:
        raise ValueError(
            f"simulation.n_replicates must be >= 1, got {sim.n_replicates}"
        )

    # Epidemic
    ep = config.epidemic
    if ep.n_individuals < 1:
        raise ValueError(
            f"epidemic.n_individuals must be >= 1, got {ep.n_individuals}"
        )
    if not (0 <= ep.n_initial_infected <= ep.n_individuals):
        raise ValueError(
            f"epidemic.n_initial_infected must be in [0, n_individuals="
            f"{ep.n_individuals}], got {ep.n_initial_infected}"
        )
    for name in ('si', 'ir', 'rs'):
        value = getattr(ep, name)
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"epidemic.{name} must be in [0, 1], got {value}")
    if ep.n_steps < 1:
        raise ValueError(f"epidemic.n_steps must be >= 1, got {ep.n_steps}")
    if ep.steps_per_season < 1:
        raise ValueError(
            f"epidemic.steps_per_season must be >= 1, got {ep.steps_per_season}"
        )
    if len(ep.season_probs) == 0:
        raise ValueError("epidemic.season_probs must list at least one season")
    for i, p in enumerate(ep.season_probs):
        if not (0.0 <= p <= 1.0):
            raise ValueError(
                f"epidemic.season_probs[{i}] must be in [0, 1], got {p}"
            )

    # Adaptive
    ad = config.adaptive
    for name in ('prev_threshold', 'p_cut'):
        value = getattr(ad, name)
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"adaptive.{name} must be in [0, 1], got {value}")
    if not (0.0 < ad.cut_weight < 1.0):
        raise ValueError(
            f"adaptive.cut_weight must be in (0, 1), got {ad.cut_weight}"
        )

    # Robustness
    rb = config.robustness
    if rb.n_nodes < 3:
        raise ValueError(f"robustness.n_nodes must be >= 3, got {rb.n_nodes}")
    if not (0.0 < rb.mean_degree < rb.n_nodes - 1):
        raise ValueError(
            f"robustness.mean_degree must be in (0, n_nodes-1="
            f"{rb.n_nodes - 1}), got {rb.mean_degree}"
        )
    unknown = set(rb.families) - KNOWN_FAMILIES
    if unknown:
        raise ValueError(
            f"robustness.families must be drawn from {KNOWN_FAMILIES}, "
            f"got unknown {sorted(unknown)}"
        )
    RemovalPolicy.parse(rb.policy)
    if rb.max_attempts < 1:
        raise ValueError(
            f"robustness.max_attempts must be >= 1, got {rb.max_attempts}"
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → sweep overrides.
    Each layer overrides only the fields it specifies.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if sweep_overrides is not None:
        deep_merge(config_dict, sweep_overrides)

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def config_to_dict(config: SimulationConfig) -> Dict:
    """Plain-dict view of a config (for YAML dumps and result metadata)."""
    return dataclasses.asdict(config)


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
