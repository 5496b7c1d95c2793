"""Network-metric summaries for comparing generated ensembles.

Used to contrast metric distributions between network families (e.g.
trait-preference vs random graphs of matching size and density).
"""

from __future__ import annotations

from typing import Dict, Sequence

import networkx as nx
import numpy as np

from gensocnet.networks import (
    NetworkGenerator,
    adjacency_to_graph,
    count_components,
    validate_adjacency,
)

METRIC_NAMES = (
    'density',
    'mean_degree',
    'mean_strength',
    'clustering',
    'n_components',
    'degree_assortativity',
)


def network_metrics(adjacency: np.ndarray) -> Dict[str, float]:
    """Summary metrics of one snapshot.

    Degree assortativity is NaN when undefined (e.g. a regular graph or a
    graph without edges).
    """
    A = validate_adjacency(adjacency)
    n = A.shape[0]
    binary = (A > 0).astype(np.float64)
    n_edges = binary.sum() / 2.0
    G = adjacency_to_graph(binary)

    if n_edges > 0:
        with np.errstate(divide='ignore', invalid='ignore'):
            assort = nx.degree_assortativity_coefficient(G)
    else:
        assort = float('nan')

    return {
        'density': float(n_edges / (n * (n - 1) / 2.0)) if n > 1 else 0.0,
        'mean_degree': float(binary.sum(axis=1).mean()) if n else 0.0,
        'mean_strength': float(A.sum(axis=1).mean()) if n else 0.0,
        'clustering': float(nx.average_clustering(G)) if n else 0.0,
        'n_components': float(count_components(A)),
        'degree_assortativity': float(assort),
    }


def trait_assortativity(adjacency: np.ndarray, traits: Sequence) -> float:
    """Assortativity of a categorical trait across edges (NaN if undefined)."""
    A = validate_adjacency(adjacency)
    if len(traits) != A.shape[0]:
        raise ValueError(
            f"got {len(traits)} trait values for a {A.shape[0]}-node network"
        )
    G = adjacency_to_graph((A > 0).astype(np.float64))
    if G.number_of_edges() == 0:
        return float('nan')
    nx.set_node_attributes(G, {i: traits[i] for i in range(len(traits))}, 'trait')
    with np.errstate(divide='ignore', invalid='ignore'):
        return float(nx.attribute_assortativity_coefficient(G, 'trait'))


def metric_ensemble(
    generator: NetworkGenerator,
    n_replicates: int,
    rng: np.random.Generator,
) -> Dict[str, np.ndarray]:
    """Metric distributions over n_replicates draws from one generator."""
    out = {name: np.zeros(n_replicates, dtype=np.float64) for name in METRIC_NAMES}
    for rep in range(n_replicates):
        for name, value in network_metrics(generator(rng)).items():
            out[name][rep] = value
    return out
