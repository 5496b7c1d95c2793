"""Tests for gensocnet.config — configuration loading and validation."""

import pytest
import yaml

from gensocnet.config import (
    AdaptiveSection,
    EpidemicSection,
    RobustnessSection,
    SimulationConfig,
    config_to_dict,
    deep_merge,
    default_config,
    load_config,
    validate_config,
)
from gensocnet.types import AdaptiveParams, EpidemicParams


# ── deep_merge tests ──────────────────────────────────────────────────

class TestDeepMerge:
    def test_simple_override(self):
        assert deep_merge({'a': 1, 'b': 2}, {'b': 3}) == {'a': 1, 'b': 3}

    def test_nested_merge(self):
        base = {'x': {'a': 1, 'b': 2}, 'y': 10}
        result = deep_merge(base, {'x': {'b': 3, 'c': 4}})
        assert result == {'x': {'a': 1, 'b': 3, 'c': 4}, 'y': 10}

    def test_override_dict_with_scalar(self):
        assert deep_merge({'a': {'nested': 1}}, {'a': 'replaced'}) == {'a': 'replaced'}

    def test_empty_override(self):
        assert deep_merge({'a': 1}, {}) == {'a': 1}


# ── default_config tests ─────────────────────────────────────────────

class TestDefaultConfig:
    def test_creates_valid_config(self):
        assert isinstance(default_config(), SimulationConfig)

    def test_default_values(self):
        config = default_config()
        assert config.simulation.seed == 42
        assert config.epidemic.n_initial_infected == 1
        assert config.adaptive.enabled is False
        assert config.adaptive.cut_weight == 0.001
        assert config.robustness.policy == 'random'
        assert config.robustness.families == ['erdos_renyi', 'barabasi_albert']

    def test_sections_do_not_share_lists(self):
        a = default_config()
        b = default_config()
        a.epidemic.season_probs.append(0.5)
        assert len(b.epidemic.season_probs) == 2

    def test_epidemic_params(self):
        params = EpidemicSection(si=0.3, ir=0.2, rs=0.1).params()
        assert params == EpidemicParams(si=0.3, ir=0.2, rs=0.1)

    def test_adaptive_params_disabled(self):
        assert AdaptiveSection(enabled=False).params() is None

    def test_adaptive_params_enabled(self):
        params = AdaptiveSection(enabled=True, prev_threshold=0.3, p_cut=0.4).params()
        assert isinstance(params, AdaptiveParams)
        assert params.prev_threshold == 0.3
        assert params.p_cut == 0.4


# ── YAML loading tests ───────────────────────────────────────────────

def _write(path, data):
    with open(path, 'w') as f:
        yaml.dump(data, f)
    return path


class TestLoadConfig:
    def test_load_from_yaml(self, tmp_path):
        path = _write(tmp_path / "base.yaml", {
            'simulation': {'seed': 99, 'n_replicates': 5},
            'epidemic': {'si': 0.25},
        })
        config = load_config(path)
        assert config.simulation.seed == 99
        assert config.simulation.n_replicates == 5
        assert config.epidemic.si == 0.25
        # Unspecified sections get defaults
        assert config.robustness.n_nodes == 50

    def test_scenario_override(self, tmp_path):
        base = _write(tmp_path / "base.yaml", {'adaptive': {'p_cut': 0.5}})
        scen = _write(tmp_path / "scen.yaml", {'adaptive': {'enabled': True}})
        config = load_config(base, scen)
        assert config.adaptive.enabled is True
        assert config.adaptive.p_cut == 0.5

    def test_missing_scenario_ignored(self, tmp_path):
        base = _write(tmp_path / "base.yaml", {})
        config = load_config(base, tmp_path / "nope.yaml")
        assert config.adaptive.enabled is False

    def test_sweep_overrides(self, tmp_path):
        base = _write(tmp_path / "base.yaml", {'epidemic': {'ir': 0.1}})
        config = load_config(base, sweep_overrides={'epidemic': {'ir': 0.4}})
        assert config.epidemic.ir == 0.4

    def test_unknown_keys_ignored(self, tmp_path):
        base = _write(tmp_path / "base.yaml", {'epidemic': {'beta': 3.0}, 'plots': {}})
        config = load_config(base)
        assert not hasattr(config.epidemic, 'beta')

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert isinstance(load_config(path), SimulationConfig)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_values_rejected(self, tmp_path):
        path = _write(tmp_path / "bad.yaml", {'epidemic': {'si': 2.0}})
        with pytest.raises(ValueError, match="epidemic.si"):
            load_config(path)

    def test_shipped_configs_load(self):
        from pathlib import Path
        root = Path(__file__).resolve().parent.parent / 'configs'
        config = load_config(root / 'default.yaml', root / 'adaptive.yaml')
        assert config.adaptive.enabled is True
        assert config.epidemic.season_probs == [0.04, 0.12]

    def test_round_trip_through_dict(self, tmp_path):
        config = default_config()
        config.epidemic.rs = 0.0
        path = _write(tmp_path / "dump.yaml", config_to_dict(config))
        assert load_config(path) == config


# ── Validation tests ─────────────────────────────────────────────────

class TestValidateConfig:
    def _config(self):
        return default_config()

    def test_negative_seed(self):
        config = self._config()
        config.simulation.seed = -1
        with pytest.raises(ValueError, match="seed"):
            validate_config(config)

    def test_zero_replicates(self):
        config = self._config()
        config.simulation.n_replicates = 0
        with pytest.raises(ValueError, match="n_replicates"):
            validate_config(config)

    @pytest.mark.parametrize("name", ['si', 'ir', 'rs'])
    def test_epidemic_probabilities(self, name):
        config = self._config()
        setattr(config.epidemic, name, -0.1)
        with pytest.raises(ValueError, match=f"epidemic.{name}"):
            validate_config(config)

    def test_too_many_initial_infected(self):
        config = self._config()
        config.epidemic.n_initial_infected = config.epidemic.n_individuals + 1
        with pytest.raises(ValueError, match="n_initial_infected"):
            validate_config(config)

    def test_empty_seasons(self):
        config = self._config()
        config.epidemic.season_probs = []
        with pytest.raises(ValueError, match="season_probs"):
            validate_config(config)

    def test_bad_season_prob(self):
        config = self._config()
        config.epidemic.season_probs = [0.1, 1.5]
        with pytest.raises(ValueError, match=r"season_probs\[1\]"):
            validate_config(config)

    @pytest.mark.parametrize("name", ['prev_threshold', 'p_cut'])
    def test_adaptive_probabilities(self, name):
        config = self._config()
        setattr(config.adaptive, name, 1.1)
        with pytest.raises(ValueError, match=f"adaptive.{name}"):
            validate_config(config)

    def test_cut_weight_must_be_positive(self):
        config = self._config()
        config.adaptive.cut_weight = 0.0
        with pytest.raises(ValueError, match="cut_weight"):
            validate_config(config)

    def test_robustness_too_small(self):
        config = self._config()
        config.robustness = RobustnessSection(n_nodes=2, mean_degree=0.5)
        with pytest.raises(ValueError, match="n_nodes"):
            validate_config(config)

    def test_unknown_family(self):
        config = self._config()
        config.robustness.families = ['erdos_renyi', 'trait_preference']
        with pytest.raises(ValueError, match="trait_preference"):
            validate_config(config)

    def test_unknown_policy(self):
        config = self._config()
        config.robustness.policy = 'closeness'
        with pytest.raises(ValueError, match="unrecognized removal policy"):
            validate_config(config)

    def test_mean_degree_range(self):
        config = self._config()
        config.robustness.mean_degree = config.robustness.n_nodes
        with pytest.raises(ValueError, match="mean_degree"):
            validate_config(config)
