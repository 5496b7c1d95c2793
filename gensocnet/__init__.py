"""gensocnet: simulation engines for generative social-network examples.

Worked examples for generative network models in animal social-network
research:
  - SIR epidemics over seasonally dynamic random networks, with optional
    prevalence-triggered edge cutting
  - Network robustness under sequential node removal across random,
    preferential-attachment and user-supplied (e.g. trait-preference)
    network families
  - Metric summaries for comparing generated network ensembles
"""

__version__ = "0.1.0"
